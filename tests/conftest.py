"""
Shared test configuration and fixtures.

Provides an in-memory remote backend that records every call, so sync
behaviour can be asserted without a real database or network.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Sequence
from datetime import datetime
from typing import Any

import pytest

from amko_kv_sync.diagnostics import SyncDiagnostics
from amko_kv_sync.key_filter import KeyFilter
from amko_kv_sync.local import MemoryLocalStore
from amko_kv_sync.remote import RemoteKVBackend, RemoteStoreAdapter
from amko_kv_sync.sync import KVSyncEngine
from amko_kv_sync.types import KVEntry

logger = logging.getLogger(__name__)


class RecordingBackend(RemoteKVBackend):
    """In-memory remote backend that records calls in order.

    ``fail_keys`` makes upserts/deletes for those keys raise;
    ``fail_query`` makes prefix queries raise.
    """

    name = "recording"

    def __init__(self, rows: dict[str, Any] | None = None) -> None:
        self.rows: dict[str, Any] = dict(rows or {})
        self.calls: list[tuple[str, Any]] = []
        self.fail_keys: set[str] = set()
        self.fail_query = False
        self.fail_initialize = False
        self.initialized = False
        self.closed = False

    async def initialize(self) -> None:
        if self.fail_initialize:
            raise ConnectionError("remote unreachable")
        self.initialized = True

    async def upsert(self, key: str, value: Any, updated_at: datetime) -> None:
        self.calls.append(("upsert", (key, value)))
        if key in self.fail_keys:
            raise RuntimeError(f"upsert rejected for {key}")
        self.rows[key] = value

    async def delete(self, key: str) -> None:
        self.calls.append(("delete", key))
        if key in self.fail_keys:
            raise RuntimeError(f"delete rejected for {key}")
        self.rows.pop(key, None)

    async def select_by_prefixes(self, prefixes: Sequence[str]) -> list[KVEntry]:
        self.calls.append(("select", tuple(prefixes)))
        if self.fail_query:
            raise RuntimeError("select failed")
        return [
            KVEntry(key=k, value=v) for k, v in self.rows.items() if k.startswith(tuple(prefixes))
        ]

    async def close(self) -> None:
        self.closed = True

    @property
    def mutations(self) -> list[tuple[str, Any]]:
        return [c for c in self.calls if c[0] in ("upsert", "delete")]


@pytest.fixture
def backend() -> RecordingBackend:
    return RecordingBackend()


@pytest.fixture
def diagnostics() -> SyncDiagnostics:
    return SyncDiagnostics()


@pytest.fixture
def adapter(backend: RecordingBackend, diagnostics: SyncDiagnostics) -> RemoteStoreAdapter:
    """Adapter in REMOTE mode over the recording backend."""
    return RemoteStoreAdapter(backend, diagnostics)


@pytest.fixture
def local_store() -> MemoryLocalStore:
    return MemoryLocalStore()


@pytest.fixture
async def engine(
    local_store: MemoryLocalStore, adapter: RemoteStoreAdapter
) -> AsyncIterator[KVSyncEngine]:
    """Engine in REMOTE mode with the default prefixes."""
    engine = KVSyncEngine(local_store, adapter, KeyFilter())
    yield engine
    await engine.aclose()


@pytest.fixture
async def local_engine(local_store: MemoryLocalStore) -> AsyncIterator[KVSyncEngine]:
    """Engine in LOCAL mode."""
    engine = KVSyncEngine(local_store, RemoteStoreAdapter.unavailable())
    yield engine
    await engine.aclose()
