"""Lobby core package.

Les imports sont effectués de manière lazy pour éviter de charger discord.py
pendant l'initialisation globale si non nécessaire.
"""
from __future__ import annotations

from importlib import import_module
from typing import TYPE_CHECKING

if TYPE_CHECKING:  # aide mypy/IDE sans exécuter les imports au runtime initial
	from .engine import Lobby  # noqa: F401
	from .models import Phase, Player, PlayerStatus, TransitionResult  # noqa: F401
	from .registry import LobbyRegistry  # noqa: F401

__all__ = ["Lobby", "LobbyRegistry", "Phase", "Player", "PlayerStatus", "TransitionResult"]

_LOCATIONS = {
	"Lobby": "core.lobby.engine",
	"LobbyRegistry": "core.lobby.registry",
	"Phase": "core.lobby.models",
	"Player": "core.lobby.models",
	"PlayerStatus": "core.lobby.models",
	"TransitionResult": "core.lobby.models",
}


def __getattr__(name: str):  # lazy resolution
	module = _LOCATIONS.get(name)
	if module is None:
		raise AttributeError(name)
	return getattr(import_module(module), name)
