"""
Magasin de documents JSON (PostgreSQL JSONB) avec jeton de révision.

Schéma :
- document : (collection, id) PRIMARY KEY, rev INT, body JSONB, updated_at TIMESTAMPTZ

Un document est un dict `{"_id": str, "_rev": int, ...}`. L'écriture est
optimiste : sans `_rev` elle crée le document, avec `_rev` elle ne réussit que
si la révision stockée est identique. Sinon DocumentConflict.
"""
from __future__ import annotations

import copy
import json
from typing import Any, Dict, Optional

import asyncpg

from core.exceptions import DocumentConflict

SCHEMA = """
CREATE TABLE IF NOT EXISTS document (
    collection TEXT NOT NULL,
    id TEXT NOT NULL,
    rev INT NOT NULL,
    body JSONB NOT NULL,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    PRIMARY KEY (collection, id)
);
"""


async def ensure_schema(pool: asyncpg.Pool):
    async with pool.acquire() as conn:
        await conn.execute(SCHEMA)


async def fetch_document(pool: asyncpg.Pool, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
    q = "SELECT rev, body FROM document WHERE collection=$1 AND id=$2"
    async with pool.acquire() as conn:
        row = await conn.fetchrow(q, collection, doc_id)
    if row is None:
        return None
    body = row["body"]
    if isinstance(body, str):
        body = json.loads(body)
    return {**body, "_id": doc_id, "_rev": row["rev"]}


async def insert_document(pool: asyncpg.Pool, collection: str, doc_id: str, body: Dict[str, Any]) -> Optional[int]:
    q = """INSERT INTO document(collection, id, rev, body) VALUES($1,$2,1,$3::jsonb)
            ON CONFLICT (collection, id) DO NOTHING RETURNING rev"""
    async with pool.acquire() as conn:
        return await conn.fetchval(q, collection, doc_id, json.dumps(body))


async def update_document(pool: asyncpg.Pool, collection: str, doc_id: str, rev: int, body: Dict[str, Any]) -> Optional[int]:
    q = """UPDATE document SET rev = rev + 1, body = $4::jsonb, updated_at = NOW()
            WHERE collection=$1 AND id=$2 AND rev=$3 RETURNING rev"""
    async with pool.acquire() as conn:
        return await conn.fetchval(q, collection, doc_id, rev, json.dumps(body))


def _split(document: Dict[str, Any]) -> tuple[str, Optional[int], Dict[str, Any]]:
    doc_id = document.get("_id")
    if not doc_id or not isinstance(doc_id, str):
        raise ValueError("Document sans _id valide")
    body = {k: v for k, v in document.items() if k not in ("_id", "_rev")}
    return doc_id, document.get("_rev"), body


class DocumentStore:
    """Collection de documents dans PostgreSQL."""

    def __init__(self, pool: asyncpg.Pool, collection: str):
        self.pool = pool
        self.collection = collection

    async def get(self, doc_id: str) -> Optional[Dict[str, Any]]:
        return await fetch_document(self.pool, self.collection, doc_id)

    async def set(self, document: Dict[str, Any]) -> Dict[str, Any]:
        doc_id, rev, body = _split(document)
        if rev is None:
            new_rev = await insert_document(self.pool, self.collection, doc_id, body)
        else:
            new_rev = await update_document(self.pool, self.collection, doc_id, rev, body)
        if new_rev is None:
            raise DocumentConflict(doc_id, rev)
        return {"id": doc_id, "rev": new_rev}


class MemoryDocumentStore:
    """Equivalent en mémoire de DocumentStore (aucune base configurée)."""

    def __init__(self, collection: str = "default"):
        self.collection = collection
        self._documents: Dict[str, Dict[str, Any]] = {}

    async def get(self, doc_id: str) -> Optional[Dict[str, Any]]:
        document = self._documents.get(doc_id)
        return copy.deepcopy(document) if document is not None else None

    async def set(self, document: Dict[str, Any]) -> Dict[str, Any]:
        doc_id, rev, body = _split(document)
        current = self._documents.get(doc_id)
        current_rev = current["_rev"] if current is not None else None
        if rev != current_rev:
            raise DocumentConflict(doc_id, rev)
        new_rev = (current_rev or 0) + 1
        self._documents[doc_id] = {**copy.deepcopy(body), "_id": doc_id, "_rev": new_rev}
        return {"id": doc_id, "rev": new_rev}

    def __len__(self) -> int:
        return len(self._documents)


__all__ = [
    "SCHEMA", "ensure_schema", "fetch_document", "insert_document", "update_document",
    "DocumentStore", "MemoryDocumentStore",
]
