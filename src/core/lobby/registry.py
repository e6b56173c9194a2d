from __future__ import annotations

import logging
from typing import Dict, Iterator, Optional, TYPE_CHECKING

from core.exceptions import LobbyAlreadyExists

if TYPE_CHECKING:
    from .engine import Lobby

logger = logging.getLogger(__name__)


class LobbyListing:
    """Vue sur les lobbies vivants.

    Chaque itération prend un nouvel instantané du registre : la vue peut être
    parcourue plusieurs fois et reflète l'état au moment du parcours.
    """

    def __init__(self, lobbies: Dict[int, "Lobby"]):
        self._lobbies = lobbies

    def __iter__(self) -> Iterator["Lobby"]:
        for lobby in list(self._lobbies.values()):
            yield lobby

    def __len__(self) -> int:
        return len(self._lobbies)


class LobbyRegistry:
    """Registre des lobbies actifs, indexé par identifiant de salon vocal.

    Seule source de vérité pour « un lobby existe-t-il pour ce salon ».
    """

    def __init__(self) -> None:
        self._lobbies: Dict[int, "Lobby"] = {}

    def register(self, lobby: "Lobby") -> None:
        if lobby.voice_channel_id in self._lobbies:
            raise LobbyAlreadyExists(lobby.voice_channel_id)
        self._lobbies[lobby.voice_channel_id] = lobby
        logger.debug("Lobby enregistré %s", lobby.voice_channel_id)

    def get(self, voice_channel_id: int) -> Optional["Lobby"]:
        return self._lobbies.get(voice_channel_id)

    def remove(self, voice_channel_id: int, *, expected: Optional["Lobby"] = None) -> Optional["Lobby"]:
        """Retire le lobby du salon. Avec `expected`, ne retire que ce lobby-là."""
        current = self._lobbies.get(voice_channel_id)
        if current is None or (expected is not None and current is not expected):
            return None
        del self._lobbies[voice_channel_id]
        logger.debug("Lobby retiré %s", voice_channel_id)
        return current

    def lobbies(self) -> LobbyListing:
        return LobbyListing(self._lobbies)

    def count(self) -> int:
        return len(self._lobbies)

    def __contains__(self, voice_channel_id: object) -> bool:
        return voice_channel_id in self._lobbies

    def __len__(self) -> int:
        return len(self._lobbies)
