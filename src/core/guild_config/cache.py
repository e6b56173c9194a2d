"""
Configuration des guildes avec cache mémoire et sauvegarde différée.

Principes :
- Lecture : le cache renvoie l'instance canonique (pas de copie), les
  mutations sont donc visibles immédiatement par tous les consommateurs.
- Ecriture : chaque mutation relance un délai court avant sauvegarde ; une
  rafale de modifications produit une seule écriture du document complet.
- Eviction : expiration glissante, vérifiée périodiquement. Une entrée dont la
  sauvegarde est en attente ou en cours n'est jamais évincée.
"""
from __future__ import annotations

import asyncio
import contextlib
import copy
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from core.exceptions import DocumentConflict, ValidationError
from .settings import Setting

logger = logging.getLogger(__name__)

DEFAULT_TTL = 600.0
DEFAULT_CHECK_PERIOD = 600.0
DEFAULT_SAVE_DELAY = 1.5


class GuildConfig:
    """Paramètres d'une guilde, adossés à un document `{_id, _rev, config}`."""

    def __init__(self, document: Dict[str, Any], store, *, save_delay: float = DEFAULT_SAVE_DELAY):
        document = dict(document)
        guild_id = document.get("_id")
        if not guild_id or not isinstance(guild_id, str):
            raise ValidationError("L'identifiant de guilde doit être une chaîne non vide.")
        config = document.get("config")
        document["config"] = dict(config) if isinstance(config, dict) else {}

        self._document = document
        self._store = store
        self._save_delay = save_delay
        self._pending_save: Optional[asyncio.Task] = None
        self._flushing = 0
        self._save_lock = asyncio.Lock()

    @property
    def id(self) -> str:
        return self._document["_id"]

    @property
    def revision(self):
        return self._document.get("_rev")

    @property
    def _config(self) -> Dict[str, Any]:
        return self._document["config"]

    # ---------- paramètres ----------
    def get(self, key: Setting | str) -> Any:
        setting = Setting.resolve(key)
        descriptor = setting.descriptor
        value = self._config.get(setting.value)
        if value is None:
            value = descriptor.default
        return descriptor.present(value)

    def set(self, key: Setting | str, value: Any) -> Any:
        """Enregistre une valeur et programme une sauvegarde si elle change.

        Le setter du paramètre peut lever InvalidSettingValue ; la valeur
        stockée reste alors inchangée.
        """
        setting = Setting.resolve(key)
        descriptor = setting.descriptor
        stored = descriptor.store(value)
        if stored != self._config.get(setting.value):
            self._config[setting.value] = stored
            self.schedule_save()
        return descriptor.present(stored)

    def reset(self, key: Setting | str) -> Any:
        setting = Setting.resolve(key)
        descriptor = setting.descriptor
        if setting.value in self._config:
            del self._config[setting.value]
            self.schedule_save()
        return descriptor.present(descriptor.default)

    def is_overridden(self, key: Setting | str) -> bool:
        return Setting.resolve(key).value in self._config

    def to_dict(self) -> Dict[str, Any]:
        return {setting.value: self.get(setting) for setting in Setting}

    @property
    def command_prefixes(self) -> list[str]:
        return self.get(Setting.PREFIX)

    # ---------- persistance ----------
    @property
    def has_pending_save(self) -> bool:
        return self._pending_save is not None or self._flushing > 0

    def schedule_save(self) -> None:
        # Une seule sauvegarde en attente : la précédente est annulée
        if self._pending_save is not None:
            self._pending_save.cancel()
        self._pending_save = asyncio.get_running_loop().create_task(self._save_later())

    async def _save_later(self) -> None:
        await asyncio.sleep(self._save_delay)
        if self._pending_save is asyncio.current_task():
            self._pending_save = None
        self._flushing += 1
        try:
            await self.save()
        finally:
            self._flushing -= 1

    async def save(self) -> bool:
        """Ecrit le document complet. Retourne False en cas d'échec (journalisé).

        Sur conflit de révision, la révision stockée est relue puis l'écriture
        retentée une fois : la mémoire reste la dernière valeur voulue.
        """
        async with self._save_lock:
            for attempt in range(2):
                document = copy.deepcopy(self._document)
                try:
                    result = await self._store.set(document)
                except DocumentConflict as exc:
                    logger.warning("Config guilde %s: %s", self.id, exc)
                    if attempt or not await self._refresh_revision():
                        return False
                    continue
                except Exception:  # noqa: BLE001
                    logger.exception("Echec sauvegarde config guilde %s", self.id)
                    return False
                self._document["_rev"] = result["rev"]
                logger.debug("Config guilde %s sauvegardée (rev %s)", self.id, result["rev"])
                return True
            return False

    async def _refresh_revision(self) -> bool:
        try:
            remote = await self._store.get(self.id)
        except Exception:  # noqa: BLE001
            logger.exception("Relecture révision config guilde %s impossible", self.id)
            return False
        if remote is None:
            self._document.pop("_rev", None)
        else:
            self._document["_rev"] = remote.get("_rev")
        logger.info("Config guilde %s: révision distante reprise (%s)", self.id, self.revision)
        return True

    async def flush(self) -> None:
        """Sauvegarde immédiatement si une écriture était programmée."""
        task, self._pending_save = self._pending_save, None
        if task is not None:
            task.cancel()
            await self.save()
        else:
            # Attend une éventuelle écriture en cours
            async with self._save_lock:
                pass

    def __repr__(self) -> str:
        return f"<GuildConfig {self.id} rev={self.revision} pending={self.has_pending_save}>"


@dataclass
class _CacheEntry:
    config: GuildConfig
    expires_at: float


class GuildConfigCache:
    """Cache des configurations de guilde devant le magasin de documents."""

    def __init__(
        self,
        store,
        *,
        ttl: float = DEFAULT_TTL,
        check_period: float = DEFAULT_CHECK_PERIOD,
        save_delay: float = DEFAULT_SAVE_DELAY,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.ttl = ttl
        self.check_period = check_period
        self.save_delay = save_delay
        self._clock = clock
        self._entries: Dict[str, _CacheEntry] = {}
        self._loading: Dict[str, asyncio.Task] = {}
        self._sweeper: Optional[asyncio.Task] = None

    @staticmethod
    def _key(guild_id) -> str:
        if isinstance(guild_id, int) and not isinstance(guild_id, bool):
            return str(guild_id)
        if isinstance(guild_id, str) and guild_id:
            return guild_id
        raise ValidationError("L'identifiant de guilde doit être une chaîne non vide.")

    async def load(self, guild_id) -> GuildConfig:
        key = self._key(guild_id)
        entry = self._entries.get(key)
        if entry is not None:
            if entry.expires_at > self._clock() or entry.config.has_pending_save:
                entry.expires_at = self._clock() + self.ttl
                return entry.config
            del self._entries[key]

        task = self._loading.get(key)
        if task is None:
            task = asyncio.get_running_loop().create_task(self._read(key))
            self._loading[key] = task
            task.add_done_callback(lambda _t: self._loading.pop(key, None))
        return await asyncio.shield(task)

    async def _read(self, key: str) -> GuildConfig:
        try:
            document = await self.store.get(key)
        except Exception:  # noqa: BLE001
            logger.exception("Lecture config guilde %s impossible, document vide utilisé", key)
            document = None
        config = GuildConfig(document or {"_id": key}, self.store, save_delay=self.save_delay)
        self._entries[key] = _CacheEntry(config, self._clock() + self.ttl)
        logger.debug("Config guilde %s chargée (rev %s)", key, config.revision)
        return config

    def get_cached(self, guild_id) -> Optional[GuildConfig]:
        entry = self._entries.get(self._key(guild_id))
        return entry.config if entry else None

    def evict_expired(self) -> int:
        now = self._clock()
        evicted = 0
        for key, entry in list(self._entries.items()):
            if entry.expires_at > now:
                continue
            if entry.config.has_pending_save:
                logger.debug("Config guilde %s expirée mais sauvegarde en attente, conservée", key)
                continue
            del self._entries[key]
            evicted += 1
        if evicted:
            logger.debug("Cache config: %s entrée(s) évincée(s)", evicted)
        return evicted

    # ---------- cycle de vie ----------
    def start(self) -> None:
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.get_running_loop().create_task(self._sweep_forever())

    async def _sweep_forever(self) -> None:
        while True:
            await asyncio.sleep(self.check_period)
            try:
                self.evict_expired()
            except Exception:  # noqa: BLE001
                logger.exception("Erreur nettoyage cache config")

    async def close(self) -> None:
        """Arrête le nettoyage périodique et sauvegarde les écritures en attente."""
        if self._sweeper is not None:
            self._sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweeper
            self._sweeper = None
        configs = [entry.config for entry in self._entries.values() if entry.config.has_pending_save]
        if configs:
            await asyncio.gather(*(config.flush() for config in configs))
            logger.info("Cache config: %s sauvegarde(s) en attente écrite(s)", len(configs))

    def __contains__(self, guild_id: object) -> bool:
        try:
            return self._key(guild_id) in self._entries
        except ValidationError:
            return False

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ["GuildConfig", "GuildConfigCache", "DEFAULT_TTL", "DEFAULT_CHECK_PERIOD", "DEFAULT_SAVE_DELAY"]
