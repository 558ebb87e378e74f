"""
Sync interceptor for a local store.

Wraps a LocalStore so every mutation is observed without changing its
synchronous contract. The wrapper is built once by the sync engine and
handed to application code instead of patching the store in place.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from ..types import SyncOperation
from ..values import to_storage_string
from .base import LocalStore

if TYPE_CHECKING:
    from ..sync.engine import KVSyncEngine

logger = logging.getLogger(__name__)


class SyncedLocalStore(LocalStore):
    """LocalStore decorator that captures mutations for remote sync.

    Flow for ``set``/``remove``:
    1. Delegate to the wrapped store (always, first)
    2. Skip capture while the engine is hydrating
    3. Enqueue an operation if the key is sync-eligible

    Reads go straight to the wrapped store.
    """

    def __init__(self, inner: LocalStore, engine: KVSyncEngine) -> None:
        if isinstance(inner, SyncedLocalStore):
            raise TypeError("SyncedLocalStore cannot wrap another SyncedLocalStore")
        self._inner = inner
        self._engine = engine

    @property
    def inner(self) -> LocalStore:
        """The wrapped store. Writes through it are not captured."""
        return self._inner

    @property
    def engine(self) -> KVSyncEngine:
        return self._engine

    def get(self, key: str) -> str | None:
        return self._inner.get(key)

    def keys(self) -> list[str]:
        return self._inner.keys()

    def __contains__(self, key: object) -> bool:
        return key in self._inner

    def __len__(self) -> int:
        return len(self._inner)

    def set(self, key: str, value: Any) -> None:
        result = self._inner.set(key, value)
        if self._should_capture(key):
            self._engine.enqueue(SyncOperation.set(key, to_storage_string(value)))
        return result

    def remove(self, key: str) -> None:
        result = self._inner.remove(key)
        if self._should_capture(key):
            self._engine.enqueue(SyncOperation.delete(key))
        return result

    def _should_capture(self, key: Any) -> bool:
        if self._engine.is_hydrating:
            logger.debug(f"Hydration in progress, not capturing {key!r}")
            return False
        return self._engine.key_filter.is_sync_eligible(key)

    def __repr__(self) -> str:
        return f"SyncedLocalStore(inner={self._inner!r})"
