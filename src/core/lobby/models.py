from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    """Phases de jeu d'un lobby."""

    INTERMISSION = "intermission"
    WORKING = "working"
    MEETING = "meeting"

    def __str__(self) -> str:
        return self.value


class PlayerStatus(str, Enum):
    LIVING = "living"
    DYING = "dying"

    def __str__(self) -> str:
        return self.value


# Etat vocal cible (mute, deaf) selon la phase et le statut du joueur
VOICE_STATES: Dict[Phase, Dict[PlayerStatus, tuple[bool, bool]]] = {
    Phase.INTERMISSION: {
        PlayerStatus.LIVING: (False, False),
        PlayerStatus.DYING: (False, False),
    },
    Phase.WORKING: {
        PlayerStatus.LIVING: (True, True),
        PlayerStatus.DYING: (False, False),
    },
    Phase.MEETING: {
        PlayerStatus.LIVING: (False, False),
        PlayerStatus.DYING: (True, False),
    },
}


@dataclass(eq=False)
class Player:
    """Joueur suivi par un lobby.

    `member` est le membre Discord courant : le lobby ne le possède pas, il est
    simplement rafraîchi à chaque (re)connexion.
    """

    id: int
    voice_channel_id: int
    member: Any = field(repr=False)
    status: PlayerStatus = PlayerStatus.LIVING

    @property
    def name(self) -> str:
        return getattr(self.member, "display_name", None) or str(self.id)

    @property
    def is_living(self) -> bool:
        return self.status is PlayerStatus.LIVING

    def in_voice(self) -> bool:
        voice = getattr(self.member, "voice", None)
        return voice is not None and voice.channel is not None

    async def set_mute_deaf(self, mute: bool, deaf: bool, reason: str) -> bool:
        """Applique l'état vocal au membre.

        Retourne False si le membre n'est pas connecté en vocal (Discord refuse
        la modification dans ce cas). Les erreurs de l'API remontent à l'appelant.
        """
        if not self.in_voice():
            logger.debug("Joueur %s hors vocal, état %s/%s ignoré", self.id, mute, deaf)
            return False
        await self.member.edit(mute=mute, deafen=deaf, reason=reason)
        return True

    async def set_for_phase(self, phase: Phase) -> bool:
        mute, deaf = VOICE_STATES[phase][self.status]
        return await self.set_mute_deaf(mute, deaf, f"Lobby: {phase.value}")

    async def set_for_intermission(self) -> bool:
        return await self.set_for_phase(Phase.INTERMISSION)

    async def set_for_working(self) -> bool:
        return await self.set_for_phase(Phase.WORKING)

    async def set_for_meeting(self) -> bool:
        return await self.set_for_phase(Phase.MEETING)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": str(self.id), "name": self.name, "status": self.status.value}


@dataclass
class PlayerUpdateFailure:
    player: Player
    error: BaseException

    def __str__(self) -> str:
        return f"{self.player.name} ({self.player.id}): {self.error}"


@dataclass
class TransitionResult:
    """Bilan d'une transition : la phase avance même en cas d'échecs partiels.

    `skipped` compte les joueurs hors vocal, laissés tels quels.
    """

    previous: Phase
    phase: Phase
    updated: int = 0
    skipped: int = 0
    failures: List[PlayerUpdateFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


def parse_phase(value) -> Optional[Phase]:
    if isinstance(value, Phase):
        return value
    if isinstance(value, str):
        try:
            return Phase(value.strip().lower())
        except ValueError:
            return None
    return None
