"""
Registre dynamique des commandes slash du bot Discord.

Convention :
- Chaque fichier de ce package (hors _*) expose une fonction `register(bot)`
	qui attache un groupe de commandes au `bot.tree` (`/lobby`, `/config`).
- La fonction `load_all_commands(bot)` importe et exécute automatiquement tous les modules de commandes
	et retourne la liste des modules chargés.
"""
from __future__ import annotations

import importlib
import pkgutil
import logging
import discord

logger = logging.getLogger(__name__)

async def load_all_commands(bot: discord.Client) -> list[str]:
	loaded: list[str] = []
	for mod in pkgutil.iter_modules(__path__):  # type: ignore[name-defined]
		if mod.name.startswith('_'):
			continue
		full_name = f"{__name__}.{mod.name}"
		try:
			module = importlib.import_module(full_name)
			reg = getattr(module, 'register', None)
			if reg is None:
				continue
			result = reg(bot)
			if hasattr(result, '__await__'):
				await result
			loaded.append(full_name)
			logger.debug("Commande chargée: %s", full_name)
		except Exception:  # noqa: BLE001
			logger.exception("Echec chargement commande %s", full_name)
	logger.info("%s module(s) de commandes chargé(s)", len(loaded))
	return loaded

__all__ = ["load_all_commands"]
