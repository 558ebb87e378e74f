"""
Supabase / PostgREST remote backend.

Talks to the PostgREST API exposed by Supabase at
``{endpoint}/rest/v1/{table}`` using the anon (or service) key.

Requests:
- Upsert: POST ?on_conflict=key, Prefer: resolution=merge-duplicates
- Delete: DELETE ?key=eq.{key}
- Select: GET ?select=key,value,updated_at&or=(key.like."{prefix}%",...)
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime
from typing import Any

import httpx

from ..config import KVSyncConfig
from ..exceptions import ClientInitError
from ..types import KVEntry
from .base import RemoteKVBackend, escape_like_pattern

logger = logging.getLogger(__name__)


def quote_filter_value(value: str) -> str:
    """Double-quote a value for use inside a PostgREST logic filter.

    Commas, dots, colons and parentheses are reserved inside ``or=(...)``;
    quoting makes them literal. Backslashes and double quotes inside the
    quotes are escaped with a backslash.
    """
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def build_prefix_filter(prefixes: Sequence[str], column: str = "key") -> str:
    """Build the ``or`` filter matching any of the prefixes literally.

    PostgREST also treats ``*`` as a LIKE wildcard; prefixes containing
    ``*`` may over-match here and are narrowed by the adapter.
    """
    parts = [
        f"{column}.like.{quote_filter_value(escape_like_pattern(p) + '%')}" for p in prefixes
    ]
    return f"({','.join(parts)})"


class PostgrestRemoteBackend(RemoteKVBackend):
    """Key-value table served by Supabase's PostgREST API via httpx."""

    name = "postgrest"

    def __init__(
        self,
        config: KVSyncConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not config.endpoint or not config.credential:
            raise ClientInitError(
                "postgrest", config.endpoint, ValueError("endpoint and anon key are required")
            )
        self.config = config
        self.base_url = f"{config.endpoint.rstrip('/')}/rest/v1/"
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def initialize(self) -> None:
        if self._client is not None:
            return
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "apikey": self.config.credential or "",
                "Authorization": f"Bearer {self.config.credential}",
                "Content-Type": "application/json",
            },
            timeout=self.config.request_timeout,
            transport=self._transport,
        )
        logger.info(f"PostgREST client ready: {self.base_url}{self.config.table}")

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("PostgREST backend is not initialized")
        return self._client

    async def upsert(self, key: str, value: Any, updated_at: datetime) -> None:
        response = await self._get_client().post(
            self.config.table,
            params={"on_conflict": "key"},
            json={"key": key, "value": value, "updated_at": updated_at.isoformat()},
            headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
        )
        response.raise_for_status()

    async def delete(self, key: str) -> None:
        response = await self._get_client().delete(
            self.config.table,
            params={"key": f"eq.{key}"},
        )
        response.raise_for_status()

    async def select_by_prefixes(self, prefixes: Sequence[str]) -> list[KVEntry]:
        if not prefixes:
            return []

        response = await self._get_client().get(
            self.config.table,
            params={
                "select": "key,value,updated_at",
                "or": build_prefix_filter(prefixes),
            },
        )
        response.raise_for_status()

        rows = response.json()
        if not isinstance(rows, list):
            raise ValueError(f"Unexpected select response: {type(rows).__name__}")
        return [KVEntry.from_dict(row) for row in rows]

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
