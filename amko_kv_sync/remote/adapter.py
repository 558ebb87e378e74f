"""
Remote store adapter.

Wraps one RemoteKVBackend behind the minimal interface the sync engine
needs and owns the availability state:

- Missing endpoint/credential: LOCAL mode, logged at INFO
- Backend construction or initialization failure: LOCAL mode for the
  lifetime of the adapter, logged as a warning
- Runtime failures: caught per call, logged with the payload and returned
  as a failed SyncOutcome

Every method is safe to call in LOCAL mode, where mutations succeed as
no-ops and queries return an empty list.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import UTC, datetime

from ..config import KVSyncConfig, RemoteBackendKind
from ..diagnostics import SyncDiagnostics
from ..exceptions import ClientInitError, ConfigurationAbsentError, RemoteCallError
from ..types import KVEntry, OperationType, SyncMode, SyncOperation, SyncOutcome
from ..values import decode_local_value
from .base import RemoteKVBackend

logger = logging.getLogger(__name__)

BackendFactory = Callable[[KVSyncConfig], RemoteKVBackend]


def create_backend(config: KVSyncConfig) -> RemoteKVBackend:
    """Construct the backend selected by ``config.backend``.

    Backend modules are imported lazily so an installation only needs the
    client library of the backend it actually uses.
    """
    if config.backend == RemoteBackendKind.POSTGREST:
        from .postgrest import PostgrestRemoteBackend

        return PostgrestRemoteBackend(config)

    if config.backend == RemoteBackendKind.COSMOS:
        from .cosmos import CosmosRemoteBackend

        return CosmosRemoteBackend(config)

    if config.backend == RemoteBackendKind.SQLITE:
        from .sqlite import SQLiteRemoteBackend

        return SQLiteRemoteBackend(config.endpoint or ":memory:", table=config.table)

    raise ValueError(f"Unsupported backend: {config.backend}")


class RemoteStoreAdapter:
    """Availability-aware facade over a remote key-value backend.

    Example:
        >>> adapter = await RemoteStoreAdapter.create(KVSyncConfig.from_environment())
        >>> adapter.mode
        <SyncMode.LOCAL: 'LOCAL'>
        >>> (await adapter.upsert("trx.001", "5000")).ok
        True
    """

    def __init__(
        self,
        backend: RemoteKVBackend | None,
        diagnostics: SyncDiagnostics | None = None,
    ) -> None:
        """Initialize the adapter.

        Args:
            backend: An initialized backend, or None for LOCAL mode
            diagnostics: Sink receiving remote call failures
        """
        self._backend = backend
        self.diagnostics = diagnostics or SyncDiagnostics()
        self._mode = SyncMode.REMOTE if backend is not None else SyncMode.LOCAL

    @classmethod
    def unavailable(cls, diagnostics: SyncDiagnostics | None = None) -> RemoteStoreAdapter:
        """Create an adapter permanently in LOCAL mode."""
        return cls(None, diagnostics)

    @classmethod
    async def create(
        cls,
        config: KVSyncConfig,
        diagnostics: SyncDiagnostics | None = None,
        backend_factory: BackendFactory = create_backend,
    ) -> RemoteStoreAdapter:
        """Construct and initialize the configured backend.

        Never raises: any problem leaves the adapter in LOCAL mode.
        """
        diagnostics = diagnostics or SyncDiagnostics(config.max_recent_errors)

        missing = config.missing_settings()
        if missing:
            diagnostics.record(
                ConfigurationAbsentError(config.backend.value, missing), level=logging.INFO
            )
            return cls.unavailable(diagnostics)

        backend: RemoteKVBackend | None = None
        try:
            backend = backend_factory(config)
            await backend.initialize()
        except Exception as e:
            init_error = (
                e
                if isinstance(e, ClientInitError)
                else ClientInitError(config.backend.value, config.endpoint, e)
            )
            diagnostics.record(init_error, level=logging.WARNING)
            logger.warning("Remote key-value store unavailable, running in LOCAL mode")
            if backend is not None:
                try:
                    await backend.close()
                except Exception as close_error:
                    logger.debug(f"Error closing failed backend: {close_error}")
            return cls.unavailable(diagnostics)

        logger.info(f"Remote key-value sync enabled ({backend.name})")
        return cls(backend, diagnostics)

    @property
    def mode(self) -> SyncMode:
        return self._mode

    @property
    def backend(self) -> RemoteKVBackend | None:
        return self._backend

    def is_available(self) -> bool:
        return self._mode == SyncMode.REMOTE

    async def upsert(self, key: str, raw: str) -> SyncOutcome[None]:
        """Store ``raw`` under ``key``, parsed as JSON when possible."""
        if not self.is_available():
            return SyncOutcome.noop()

        value = decode_local_value(raw)
        try:
            await self._backend.upsert(key, value, datetime.now(UTC))  # type: ignore[union-attr]
        except Exception as e:
            return self._failed("upsert", key, e, {"key": key, "value": raw})
        return SyncOutcome.success()

    async def delete(self, key: str) -> SyncOutcome[None]:
        """Remove the entry for ``key``."""
        if not self.is_available():
            return SyncOutcome.noop()

        try:
            await self._backend.delete(key)  # type: ignore[union-attr]
        except Exception as e:
            return self._failed("delete", key, e, {"key": key})
        return SyncOutcome.success()

    async def query_by_prefixes(self, prefixes: Sequence[str]) -> SyncOutcome[list[KVEntry]]:
        """Fetch every entry whose key starts with one of ``prefixes``."""
        if not self.is_available():
            return SyncOutcome.noop([])

        prefixes = tuple(prefixes)
        try:
            rows = await self._backend.select_by_prefixes(prefixes)  # type: ignore[union-attr]
        except Exception as e:
            return self._failed("query", None, e, {"prefixes": list(prefixes)})

        # Backends match with a pattern operator; keep only literal matches
        entries = [
            row for row in rows if isinstance(row.key, str) and row.key.startswith(prefixes)
        ]
        if len(entries) != len(rows):
            logger.debug(f"Dropped {len(rows) - len(entries)} rows outside the prefix set")
        return SyncOutcome.success(entries)

    async def apply(self, op: SyncOperation) -> SyncOutcome[None]:
        """Replay a captured operation: SET as upsert, DELETE as delete."""
        if op.type == OperationType.SET:
            return await self.upsert(op.key, op.value if op.value is not None else "")
        return await self.delete(op.key)

    async def close(self) -> None:
        if self._backend is not None:
            try:
                await self._backend.close()
            except Exception as e:
                logger.warning(f"Error closing remote backend: {e}")

    def _failed(
        self, operation: str, key: str | None, cause: Exception, payload: dict
    ) -> SyncOutcome:
        error = RemoteCallError(operation, key, cause, payload)
        self.diagnostics.record(error, level=logging.WARNING)
        return SyncOutcome.failure(error)
