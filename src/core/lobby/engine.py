from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Tuple, TYPE_CHECKING

import discord

from core.exceptions import InvalidLobby, InvalidTransition
from .models import Phase, Player, PlayerStatus, PlayerUpdateFailure, TransitionResult, parse_phase

if TYPE_CHECKING:
    from .registry import LobbyRegistry

logger = logging.getLogger(__name__)

STOP_REASON = "Lobby arrêté"


class Lobby:
    """Lobby de jeu lié à un salon vocal.

    Responsabilités:
        - Machine à états des phases (intermission, working, meeting).
        - Suivi des joueurs (créés à la connexion, conservés jusqu'à l'arrêt).
        - Application concurrente de l'état vocal à chaque transition.

    Les transitions concurrentes ne sont pas sérialisées : l'appelant traite les
    requêtes séquentiellement.
    """

    def __init__(
        self,
        voice_channel_id: int,
        *,
        phase: Phase | str = Phase.INTERMISSION,
        text_channel_id: Optional[int] = None,
        room: Optional[Dict[str, Any]] = None,
        registry: Optional["LobbyRegistry"] = None,
    ):
        if not isinstance(voice_channel_id, int) or isinstance(voice_channel_id, bool) or voice_channel_id <= 0:
            raise InvalidLobby(f"Identifiant de salon vocal invalide: {voice_channel_id!r}")
        parsed = parse_phase(phase)
        if parsed is None:
            raise InvalidLobby(f"Phase de lobby invalide: {phase!r}")
        self.voice_channel_id = voice_channel_id
        self.text_channel_id = text_channel_id
        self.phase: Phase = parsed
        self.room = dict(room) if room else None
        self._registry = registry
        self._players: Dict[int, Player] = {}
        self._voice_channel: Optional[discord.VoiceChannel] = None

    # ---------- cycle de vie ----------
    @classmethod
    async def start(cls, registry: "LobbyRegistry", voice_channel, text_channel=None) -> "Lobby":
        """Crée un lobby pour le salon vocal et y connecte les membres présents.

        Lève LobbyAlreadyExists si le salon a déjà un lobby.
        """
        lobby = cls(
            voice_channel.id,
            text_channel_id=getattr(text_channel, "id", None),
            registry=registry,
        )
        lobby._voice_channel = voice_channel
        registry.register(lobby)

        _, failures = await lobby._fan_out(
            [m for m in voice_channel.members if not m.bot],
            lambda member: lobby.connect_player(member),
        )
        for failure in failures:
            logger.warning("Lobby %s: connexion initiale échouée pour %s", lobby.voice_channel_id, failure)

        lobby.emit("Créé")
        return lobby

    async def stop(self) -> List[PlayerUpdateFailure]:
        """Retire le lobby du registre puis rétablit la voix de tous les joueurs."""
        if self._registry is not None:
            self._registry.remove(self.voice_channel_id, expected=self)

        _, failures = await self._fan_out(
            self.players,
            lambda player: player.set_mute_deaf(False, False, STOP_REASON),
        )
        for failure in failures:
            logger.warning("Lobby %s: impossible de rétablir la voix de %s", self.voice_channel_id, failure)

        self.emit("Détruit")
        return failures

    # ---------- accès ----------
    @property
    def voice_channel(self):
        return self._voice_channel

    @voice_channel.setter
    def voice_channel(self, channel) -> None:
        if channel is not None and channel.id != self.voice_channel_id:
            raise InvalidLobby("Le salon vocal ne correspond pas au lobby")
        self._voice_channel = channel

    @property
    def players(self) -> List[Player]:
        return list(self._players.values())

    def get_player(self, player_id: int) -> Optional[Player]:
        return self._players.get(player_id)

    def __contains__(self, player_id: object) -> bool:
        return player_id in self._players

    def __len__(self) -> int:
        return len(self._players)

    def emit(self, message: str) -> None:
        logger.info("Lobby %s: %s", self.voice_channel_id, message)

    async def fetch_member(self, member_id: int) -> Optional[discord.Member]:
        """Résout un membre de la guilde du salon vocal (cache puis API)."""
        channel = self._voice_channel
        guild = getattr(channel, "guild", None)
        if guild is None:
            return None
        member = guild.get_member(member_id)
        if member is not None:
            return member
        try:
            return await guild.fetch_member(member_id)
        except (discord.NotFound, discord.Forbidden):
            return None

    # ---------- joueurs ----------
    async def connect_player(self, member, status: PlayerStatus | None = None) -> Optional[Player]:
        """Connecte (ou reconnecte) un membre comme joueur.

        Les bots sont ignorés. Un joueur existant est réutilisé ; `status` ne
        s'applique qu'à la création.
        """
        if member.bot:
            return None

        player = self._players.get(member.id)
        if player is None:
            player = Player(
                id=member.id,
                voice_channel_id=self.voice_channel_id,
                member=member,
                status=status or PlayerStatus.LIVING,
            )
            self._players[member.id] = player
        else:
            player.member = member

        await self._sync_player(player)
        self.emit(f"Joueur connecté {player.name} ({player.id})")
        return player

    async def kill_player(self, member) -> Optional[Player]:
        player = self._players.get(member.id)
        if player is None:
            return await self.connect_player(member, PlayerStatus.DYING)

        player.member = member
        player.status = PlayerStatus.DYING
        await self._sync_player(player)
        self.emit(f"Joueur tué {player.name} ({player.id})")
        return player

    async def revive_player(self, member) -> Optional[Player]:
        player = self._players.get(member.id)
        if player is None:
            return None

        player.member = member
        player.status = PlayerStatus.LIVING
        await self._sync_player(player)
        self.emit(f"Joueur ressuscité {player.name} ({player.id})")
        return player

    async def update_player_state(self, player: Player) -> bool:
        """Applique au joueur l'état vocal de la phase courante."""
        return await player.set_for_phase(self.phase)

    async def _sync_player(self, player: Player) -> None:
        try:
            await self.update_player_state(player)
        except Exception:  # noqa: BLE001
            logger.exception(
                "Lobby %s: échec mise à jour vocale de %s (%s)", self.voice_channel_id, player.name, player.id
            )

    # ---------- transitions ----------
    async def transition(self, target: Phase | str) -> TransitionResult:
        """Passe le lobby dans la phase `target`.

        Les mises à jour des joueurs sont lancées en parallèle ; un échec
        individuel n'interrompt pas les autres et n'empêche pas le changement de
        phase. Les échecs sont retournés dans le résultat.
        """
        phase = parse_phase(target)
        if phase is None:
            raise InvalidTransition(target)
        if phase is self.phase:
            raise InvalidTransition(phase, self.phase)

        previous = self.phase
        players = self.players
        self.emit(f"Transition vers {phase.value}")
        applied, failures = await self._fan_out(players, self._phase_update(phase))
        self.phase = phase
        self.emit(phase.value.capitalize())

        for failure in failures:
            logger.warning("Lobby %s: mise à jour %s échouée pour %s", self.voice_channel_id, phase.value, failure)
        return TransitionResult(
            previous=previous,
            phase=phase,
            updated=applied,
            skipped=len(players) - applied - len(failures),
            failures=failures,
        )

    @staticmethod
    def _phase_update(phase: Phase) -> Callable[[Player], Awaitable[Any]]:
        if phase is Phase.INTERMISSION:
            return lambda player: player.set_for_intermission()
        if phase is Phase.WORKING:
            return lambda player: player.set_for_working()
        if phase is Phase.MEETING:
            return lambda player: player.set_for_meeting()
        raise InvalidTransition(phase)

    async def _fan_out(
        self, items: Iterable, action: Callable[[Any], Awaitable[Any]]
    ) -> Tuple[int, List[PlayerUpdateFailure]]:
        """Lance `action` sur chaque élément en parallèle.

        Retourne le nombre d'actions appliquées (résultat `True`) et les échecs.
        """
        items = list(items)
        applied = 0
        results = await asyncio.gather(*(action(item) for item in items), return_exceptions=True)
        failures: List[PlayerUpdateFailure] = []
        for item, result in zip(items, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                player = item if isinstance(item, Player) else Player(
                    id=item.id, voice_channel_id=self.voice_channel_id, member=item
                )
                failures.append(PlayerUpdateFailure(player=player, error=result))
            elif result is True:
                applied += 1
        return applied, failures

    # ---------- sérialisation ----------
    def to_dict(self) -> Dict[str, Any]:
        return {
            "voice_channel_id": str(self.voice_channel_id),
            "text_channel_id": str(self.text_channel_id) if self.text_channel_id else None,
            "phase": self.phase.value,
            "room": self.room,
            "players": [player.to_dict() for player in self.players],
        }

    def __repr__(self) -> str:
        return f"<Lobby {self.voice_channel_id} phase={self.phase.value} players={len(self._players)}>"
