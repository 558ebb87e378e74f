"""
Sync engine for mirroring a local key-value store to a remote table.

Owns all mutable sync state for one local store:
- The hydration scope (suppresses capture while remote rows are copied in)
- The outbound queue and its debounce task
- The single interceptor handed to application code

Lifecycle: create -> hydrate -> install -> run -> (optional) aclose
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any

from ..config import KVSyncConfig
from ..diagnostics import SyncDiagnostics
from ..key_filter import KeyFilter
from ..local.base import LocalStore
from ..local.interceptor import SyncedLocalStore
from ..remote.adapter import BackendFactory, RemoteStoreAdapter, create_backend
from ..types import FlushResult, HydrationResult, SyncMode, SyncOperation
from .hydrator import hydrate_local_store
from .queue import DEFAULT_DEBOUNCE_SECONDS, OutboundQueue

logger = logging.getLogger(__name__)


class KVSyncEngine:
    """Mirrors sync-eligible keys of a local store to a remote store.

    Example:
        >>> engine = await KVSyncEngine.create(MemoryLocalStore())
        >>> await engine.hydrate()
        >>> store = engine.install()
        >>> store.set("trx.001", "5000")  # upserted after the debounce window
        >>> engine.status
        <SyncMode.REMOTE: 'REMOTE'>
    """

    def __init__(
        self,
        local: LocalStore,
        adapter: RemoteStoreAdapter,
        key_filter: KeyFilter | None = None,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
    ) -> None:
        """Initialize the engine.

        Args:
            local: The local store to mirror. An interceptor from another
                engine is unwrapped so captures never stack.
            adapter: Remote store adapter (REMOTE or LOCAL mode)
            key_filter: Filter selecting sync-eligible keys
            debounce_seconds: Delay before buffered operations are flushed
        """
        if isinstance(local, SyncedLocalStore):
            local = local.inner
        self._local = local
        self._adapter = adapter
        self.key_filter = key_filter or KeyFilter()
        self._queue = OutboundQueue(adapter, debounce_seconds)
        self._store: SyncedLocalStore | None = None

        self._hydration_depth = 0
        self._last_hydration: HydrationResult | None = None
        self._hydrated_at: datetime | None = None

    @classmethod
    async def create(
        cls,
        local: LocalStore,
        config: KVSyncConfig | None = None,
        backend_factory: BackendFactory = create_backend,
    ) -> KVSyncEngine:
        """Build an engine and its remote adapter from configuration.

        Never raises for remote problems; the engine falls back to LOCAL mode.
        """
        config = config or KVSyncConfig.from_environment()
        diagnostics = SyncDiagnostics(config.max_recent_errors)
        adapter = await RemoteStoreAdapter.create(config, diagnostics, backend_factory)
        return cls(
            local,
            adapter,
            key_filter=KeyFilter(config.prefixes),
            debounce_seconds=config.debounce_seconds,
        )

    @property
    def status(self) -> SyncMode:
        """Current sync mode (read-only)."""
        return self._adapter.mode

    @property
    def adapter(self) -> RemoteStoreAdapter:
        return self._adapter

    @property
    def queue(self) -> OutboundQueue:
        return self._queue

    @property
    def diagnostics(self) -> SyncDiagnostics:
        return self._adapter.diagnostics

    @property
    def local(self) -> LocalStore:
        """The raw local store. Writes through it are not synced."""
        return self._local

    @property
    def is_hydrating(self) -> bool:
        return self._hydration_depth > 0

    @contextmanager
    def _hydration_scope(self) -> Iterator[None]:
        self._hydration_depth += 1
        try:
            yield
        finally:
            self._hydration_depth -= 1

    def install(self) -> SyncedLocalStore:
        """Return the intercepting store for application code.

        The interceptor is built once; calling this again returns the
        same instance, so a write is never captured twice.
        """
        if self._store is None:
            self._store = SyncedLocalStore(self._local, self)
            logger.debug(f"Sync interceptor installed ({self.status.value} mode)")
        return self._store

    @property
    def store(self) -> SyncedLocalStore:
        return self.install()

    def enqueue(self, op: SyncOperation) -> bool:
        """Buffer a captured operation for the next flush."""
        return self._queue.enqueue(op)

    async def hydrate(self) -> HydrationResult:
        """Copy remote entries for the configured prefixes into the local store."""
        with self._hydration_scope():
            result = await hydrate_local_store(
                self._adapter, self._local, self.key_filter.prefixes
            )
        self._last_hydration = result
        if result.success and result.remote_available:
            self._hydrated_at = datetime.now(UTC)
        return result

    async def flush(self) -> FlushResult:
        """Replay buffered operations immediately."""
        return await self._queue.flush()

    async def aclose(self) -> None:
        """Flush buffered operations and release the remote connection."""
        await self._queue.aclose()
        await self._adapter.close()

    async def __aenter__(self) -> KVSyncEngine:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    def get_status(self) -> dict[str, Any]:
        """Diagnostic snapshot of the engine."""
        last_flush = self._queue.last_flush
        last_hydration = self._last_hydration
        return {
            "status": self.status.value,
            "prefixes": list(self.key_filter.prefixes),
            "hydrating": self.is_hydrating,
            "hydrated_at": self._hydrated_at.isoformat() if self._hydrated_at else None,
            "hydrated_keys": last_hydration.written if last_hydration else 0,
            "pending_operations": len(self._queue.pending),
            "flush_scheduled": self._queue.has_scheduled_flush,
            "flush_count": self._queue.flush_count,
            "dropped_operations": self._queue.dropped_count,
            "last_flush_failed": len(last_flush.failed) if last_flush else 0,
            "error_counts": self.diagnostics.error_counts,
            "recent_errors": [r.to_dict() for r in self.diagnostics.recent_errors],
        }
