"""
Remote key-value backends.

The adapter is the only entry point the sync engine uses. Backends are
imported lazily by ``create_backend`` so only the selected backend's
client library has to be installed.

Example:
    >>> from amko_kv_sync.config import KVSyncConfig, RemoteBackendKind
    >>> from amko_kv_sync.remote import RemoteStoreAdapter
    >>> config = KVSyncConfig(backend=RemoteBackendKind.SQLITE, endpoint="/tmp/kv.db")
    >>> adapter = await RemoteStoreAdapter.create(config)
"""

from .adapter import RemoteStoreAdapter, create_backend
from .base import RemoteKVBackend, escape_like_pattern

__all__ = [
    "RemoteKVBackend",
    "RemoteStoreAdapter",
    "create_backend",
    "escape_like_pattern",
]
