"""
Abstraction pour PostgreSQL via asyncpg.

Principes :
- Un pool global unique, créé à la demande (`get_pool`)
- Les helpers SQL vivent dans le package `db` (pas d'ORM)
- Schéma minimal : une table `document` pour les configurations de guilde
"""
from __future__ import annotations

import asyncpg
import logging

from db import documents as documents_db

logger = logging.getLogger(__name__)

_pool = None

# Collection des documents de configuration de guilde
GUILDS_COLLECTION = "guilds"


async def get_pool(dsn: str):
    """
    Retourne (et crée si nécessaire) le pool asyncpg.
    Args :
        dsn : URL de connexion Postgres
    """
    global _pool
    if _pool is None:
        _pool = await asyncpg.create_pool(dsn, min_size=1, max_size=5)
        logger.info("Pool asyncpg initialisé")
    return _pool


async def ensure_schema(pool: asyncpg.Pool):
    """
    Vérifie et crée le schéma requis si absent.
    """
    await documents_db.ensure_schema(pool)
    logger.info("Schéma vérifié (document)")


async def close_pool():
    global _pool
    if _pool is not None:
        await _pool.close()
        _pool = None
        logger.info("Pool asyncpg fermé")
