"""
Configuration centrale du bot Discord.

Ce module charge les variables d'environnement (.env) et prépare :
- Les intents Discord (members, voice_states, message_content)
- Le token du bot (BOT_TOKEN, obligatoire)
- L'URL de la base de données (DATABASE_URL, optionnelle : sans elle la
  configuration des guildes reste en mémoire)
- L'API HTTP de consultation des lobbies (API_ENABLED, API_HOST, API_PORT)
- Les délais du cache de configuration (GUILD_CACHE_TTL, GUILD_CACHE_CHECK_PERIOD, GUILD_SAVE_DELAY)

Un warning est émis si BOT_TOKEN est absent pour détecter le problème avant le lancement du bot.
"""
from __future__ import annotations

import os
import logging
from importlib import metadata
from dotenv import load_dotenv
import discord

load_dotenv()

logger = logging.getLogger(__name__)


def _env_bool(name: str, default: str = "false") -> bool:
    return (os.getenv(name, default) or default).strip().lower() in {"1", "true", "yes", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("%s invalide (%r), valeur par défaut %s utilisée", name, raw, default)
        return default


INTENTS = discord.Intents.default()
INTENTS.message_content = True  # commandes texte préfixées
INTENTS.members = True
INTENTS.voice_states = True

BOT_TOKEN = os.getenv("BOT_TOKEN")
DATABASE_URL = os.getenv("DATABASE_URL")

API_ENABLED = _env_bool("API_ENABLED", "true")
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(_env_float("API_PORT", 8080))

# Cache des guildes : 10 à 20 minutes selon la période de vérification
GUILD_CACHE_TTL = _env_float("GUILD_CACHE_TTL", 600.0)
GUILD_CACHE_CHECK_PERIOD = _env_float("GUILD_CACHE_CHECK_PERIOD", 600.0)
GUILD_SAVE_DELAY = _env_float("GUILD_SAVE_DELAY", 1.5)

try:
    VERSION = metadata.version("voice-lobby-bot")
except metadata.PackageNotFoundError:
    VERSION = "Unreleased"


# Avertit si le token du bot est absent
if not BOT_TOKEN:
    logger.warning("BOT_TOKEN manquant dans l'environnement")
