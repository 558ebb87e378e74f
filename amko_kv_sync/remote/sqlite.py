"""
SQLite remote backend.

Keeps the key-value table in a SQLite database file. Useful when several
processes on one host (or a shared volume) mirror the same store, and for
exercising the sync engine against a real SQL table.

Table schema:
    amko_kv(key TEXT PRIMARY KEY, value TEXT /* JSON */, updated_at TEXT)
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite

from ..types import KVEntry
from .base import RemoteKVBackend, escape_like_pattern

logger = logging.getLogger(__name__)

_TABLE_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class SQLiteRemoteBackend(RemoteKVBackend):
    """Key-value table stored in SQLite via aiosqlite.

    Prefix queries use ``LIKE ? ESCAPE '\\'`` with case sensitive LIKE
    enabled, so configured prefixes match literally.
    """

    name = "sqlite"

    def __init__(self, db_path: str | Path, table: str = "amko_kv") -> None:
        if not _TABLE_NAME_RE.match(table):
            raise ValueError(f"Invalid table name: {table!r}")
        self.db_path = db_path
        self.table = table
        self.conn: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        if self.conn is not None:
            return

        db_path = str(self.db_path)
        if db_path != ":memory:":
            Path(db_path).expanduser().parent.mkdir(parents=True, exist_ok=True)
            db_path = str(Path(db_path).expanduser())

        conn = await aiosqlite.connect(db_path)
        try:
            await conn.execute("PRAGMA case_sensitive_like = ON")
            await conn.execute(f"""
                CREATE TABLE IF NOT EXISTS {self.table} (
                    key TEXT NOT NULL PRIMARY KEY,
                    value TEXT,
                    updated_at TEXT NOT NULL
                )
            """)
            await conn.commit()
        except Exception:
            await conn.close()
            raise

        self.conn = conn
        logger.info(f"SQLite key-value table ready: {db_path} ({self.table})")

    def _connection(self) -> aiosqlite.Connection:
        if self.conn is None:
            raise RuntimeError("SQLite backend is not initialized")
        return self.conn

    async def upsert(self, key: str, value: Any, updated_at: datetime) -> None:
        conn = self._connection()
        await conn.execute(
            f"""
            INSERT INTO {self.table} (key, value, updated_at) VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                updated_at = excluded.updated_at
            """,
            (key, json.dumps(value, ensure_ascii=False), updated_at.isoformat()),
        )
        await conn.commit()

    async def delete(self, key: str) -> None:
        conn = self._connection()
        await conn.execute(f"DELETE FROM {self.table} WHERE key = ?", (key,))
        await conn.commit()

    async def select_by_prefixes(self, prefixes: Sequence[str]) -> list[KVEntry]:
        if not prefixes:
            return []

        conn = self._connection()
        clauses = " OR ".join("key LIKE ? ESCAPE '\\'" for _ in prefixes)
        params = [f"{escape_like_pattern(p)}%" for p in prefixes]

        entries: list[KVEntry] = []
        async with conn.execute(
            f"SELECT key, value, updated_at FROM {self.table} WHERE {clauses} ORDER BY key",
            params,
        ) as cursor:
            async for row in cursor:
                key, raw_value, updated_at = row
                entries.append(
                    KVEntry.from_dict(
                        {
                            "key": key,
                            "value": json.loads(raw_value) if raw_value is not None else None,
                            "updated_at": updated_at,
                        }
                    )
                )
        return entries

    async def close(self) -> None:
        if self.conn is not None:
            await self.conn.close()
            self.conn = None
