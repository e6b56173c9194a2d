"""
Configuration centralisée du logging pour le bot Discord.

Objectifs :
- Un seul setup idempotent (évite la duplication des handlers)
- Déduplication des messages identiques rapprochés (utile en cas de retries)
- Format uniforme configurable via variables d'environnement
"""
from __future__ import annotations

import logging
import threading
import time
import os

_INITIALIZED = False

DEFAULT_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
DEFAULT_FORMAT = '[%(asctime)s] %(levelname)s %(name)s: %(message)s'
# Fenêtre pendant laquelle un message identique est ignoré (secondes)
DEDUP_WINDOW = float(os.getenv("LOG_DEDUP_WINDOW", "5") or 5)


class _DeduplicateFilter(logging.Filter):
    """Ignore un message déjà émis dans la fenêtre `window`.

    Les transitions de lobby se répètent légitimement d'une partie à l'autre :
    seule la répétition rapprochée est filtrée.
    """

    def __init__(self, window: float = DEDUP_WINDOW, clock=time.monotonic):
        super().__init__()
        self.window = window
        self._clock = clock
        self._lock = threading.Lock()
        self._seen: dict[tuple, float] = {}

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401
        # Déduplication basée sur le message rendu (args interpolés)
        try:
            rendered = record.getMessage()
        except Exception:  # noqa: BLE001
            rendered = str(record.msg)
        key = (record.name, record.levelno, rendered)
        now = self._clock()
        with self._lock:
            last = self._seen.get(key)
            if last is not None and now - last < self.window:
                return False
            self._seen[key] = now
            # Limite la croissance mémoire (reset si trop gros)
            if len(self._seen) > 5000:
                self._seen.clear()
        return True


def setup_logging(force: bool = False) -> None:
    global _INITIALIZED
    if _INITIALIZED and not force:
        return

    root = logging.getLogger()
    if force:
        # Purge tous les handlers existants
        for h in list(root.handlers):
            root.removeHandler(h)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.addFilter(_DeduplicateFilter())
        root.addHandler(handler)
    else:
        for h in root.handlers:
            h.addFilter(_DeduplicateFilter())
    # Uniformise le format et le niveau de log
    for h in root.handlers:
        h.setFormatter(logging.Formatter(DEFAULT_FORMAT))
    root.setLevel(getattr(logging, DEFAULT_LEVEL, logging.INFO))
    # discord.py est très bavard en DEBUG
    logging.getLogger("discord").setLevel(max(root.level, logging.INFO))
    _INITIALIZED = True


__all__ = ["setup_logging"]
