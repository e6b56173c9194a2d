"""Configuration par guilde (cache mémoire + sauvegarde différée)."""
from __future__ import annotations

from .cache import GuildConfig, GuildConfigCache
from .settings import Setting

__all__ = ["GuildConfig", "GuildConfigCache", "Setting"]
