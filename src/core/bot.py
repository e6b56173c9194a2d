"""
Classe principale du bot Discord.

Responsabilités :
- Crée le client Discord et l'arbre de commandes slash.
- Initialise la base de données (pool + schéma) si configurée.
- Instancie les stores applicatifs : registre des lobbies, cache de configuration des guildes.
- Enregistre les commandes, les événements et démarre l'API HTTP.

Note : L'initialisation asynchrone est centralisée dans `setup_hook`, appelé avant `on_ready`.
"""
from __future__ import annotations

import logging
import discord
from discord import app_commands

from core import config, db
from core.guild_config import GuildConfigCache
from core.lobby.registry import LobbyRegistry
from db.documents import DocumentStore, MemoryDocumentStore

logger = logging.getLogger(__name__)

class Bot(discord.Client):
    """
    Client Discord étendu, encapsulant l'état applicatif.

    Attributs principaux :
        tree : Arbre des commandes slash (CommandTree)
        db_pool : Pool asyncpg (None si aucune DB configurée)
        lobbies : Registre des lobbies en cours (mémoire uniquement)
        guild_configs : Cache des configurations de guilde
        api_runner : Runner aiohttp de l'API HTTP (None si désactivée)
    """


    def __init__(self):
        super().__init__(intents=config.INTENTS)
        self.tree = app_commands.CommandTree(self)
        self.db_pool = None  # Sera peuplé si DATABASE_URL défini
        self.lobbies = LobbyRegistry()
        self.guild_configs: GuildConfigCache | None = None
        self.api_runner = None

    async def setup_hook(self):
        """
        Initialise les sous-systèmes avant la mise en ligne.

        Séquence :
        1. Connexion et migration DB (si configurée)
        2. Cache de configuration des guildes (DB ou mémoire)
        3. Enregistrement des commandes et événements
        4. Démarrage de l'API HTTP
        """
        # Initialisation DB et schémas
        try:
            if config.DATABASE_URL:
                self.db_pool = await db.get_pool(config.DATABASE_URL)
                await db.ensure_schema(self.db_pool)
                logger.info("DB prête")
        except Exception:  # noqa: BLE001
            logger.exception("Erreur init DB")
            self.db_pool = None
        # Store des configurations de guilde
        if self.db_pool is not None:
            store = DocumentStore(self.db_pool, db.GUILDS_COLLECTION)
        else:
            logger.warning("Aucune DB : configuration des guildes conservée en mémoire uniquement")
            store = MemoryDocumentStore(db.GUILDS_COLLECTION)
        self.guild_configs = GuildConfigCache(
            store,
            ttl=config.GUILD_CACHE_TTL,
            check_period=config.GUILD_CACHE_CHECK_PERIOD,
            save_delay=config.GUILD_SAVE_DELAY,
        )
        self.guild_configs.start()
        # Chargement commandes dynamiques
        try:
            from commands import load_all_commands  # type: ignore
            await load_all_commands(self)
        except Exception:  # noqa: BLE001
            logger.exception("Erreur chargement commandes dynamiques")
        # Events
        try:
            from events.voice import setup as setup_voice  # type: ignore
            from events.messages import setup as setup_messages  # type: ignore
            setup_voice(self)
            setup_messages(self)
        except Exception:  # noqa: BLE001
            logger.exception("Erreur setup events")
        # API HTTP
        if config.API_ENABLED:
            try:
                from api.server import start_api  # import local : aiohttp chargé seulement si utile
                self.api_runner = await start_api(self, config.API_HOST, config.API_PORT, version=config.VERSION)
            except Exception:  # noqa: BLE001
                logger.exception("Erreur démarrage API HTTP")
        # Sync final
        try:
            await self.tree.sync()
            logger.info("Slash commands synchronisées")
        except Exception:  # noqa: BLE001
            logger.exception("Erreur sync slash commands")

    async def on_ready(self):
        """
        Log d'état lorsque le bot est prêt.
        """
        logger.info("Connecté: %s (%s) | guildes: %s", self.user, getattr(self.user, 'id', '?'), len(self.guilds))

    async def close(self):  # type: ignore[override]
        """
        Fermeture propre du bot.
        Arrête l'API, écrit les configurations en attente puis ferme le pool asyncpg.
        Les lobbies en cours ne sont pas persistés.
        """
        if self.lobbies.count():
            logger.warning("Arrêt avec %s lobby(s) en cours, non persistés", self.lobbies.count())
        try:
            if self.api_runner is not None:
                await self.api_runner.cleanup()
                self.api_runner = None
        except Exception:  # noqa: BLE001
            logger.exception("Erreur arrêt API HTTP")
        try:
            if self.guild_configs is not None:
                await self.guild_configs.close()
        except Exception:  # noqa: BLE001
            logger.exception("Erreur écriture configurations en attente")
        try:
            if self.db_pool is not None:
                await db.close_pool()
                self.db_pool = None
        except Exception:  # noqa: BLE001
            logger.exception("Erreur fermeture pool")
        await super().close()
