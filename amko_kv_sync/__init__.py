"""
AMKO Key-Value Sync

Mirrors a local, synchronous key-value store to a remote table so values
survive across devices and sessions.

Provides:
- Write capture through an intercepting local store wrapper
- Debounced, ordered replay of captured writes to the remote store
- Startup hydration of remote entries into the local store
- Remote backends for Supabase (PostgREST), Cosmos DB and SQLite
- Graceful LOCAL mode when the remote is not configured or unreachable

Usage:

    >>> from amko_kv_sync import JsonFileLocalStore, KVSyncConfig, auto
    >>> local = JsonFileLocalStore("~/.amko/local_store.json")
    >>> async def main(store):
    ...     store.set("trx.001", "5000")
    >>> engine, _ = await auto(local, main, KVSyncConfig.from_environment())
    >>> engine.status
    <SyncMode.REMOTE: 'REMOTE'>
"""

from .boot import auto, boot
from .config import (
    DEFAULT_SYNC_PREFIXES,
    CosmosAuthMethod,
    KVSyncConfig,
    RemoteBackendKind,
)
from .diagnostics import DiagnosticRecord, SyncDiagnostics
from .exceptions import (
    ClientInitError,
    ConfigurationAbsentError,
    KVSyncError,
    LocalStoreIOError,
    RemoteCallError,
)
from .key_filter import KeyFilter, is_sync_eligible
from .local import JsonFileLocalStore, LocalStore, MemoryLocalStore, SyncedLocalStore
from .remote import RemoteKVBackend, RemoteStoreAdapter, create_backend
from .sync import KVSyncEngine, OutboundQueue, hydrate_local_store
from .types import (
    FlushResult,
    HydrationResult,
    KVEntry,
    OperationType,
    SyncMode,
    SyncOperation,
    SyncOutcome,
)

__version__ = "0.1.0"

__all__ = [
    # Engine and boot
    "KVSyncEngine",
    "OutboundQueue",
    "hydrate_local_store",
    "boot",
    "auto",
    # Configuration
    "KVSyncConfig",
    "RemoteBackendKind",
    "CosmosAuthMethod",
    "DEFAULT_SYNC_PREFIXES",
    # Filter
    "KeyFilter",
    "is_sync_eligible",
    # Local stores
    "LocalStore",
    "MemoryLocalStore",
    "JsonFileLocalStore",
    "SyncedLocalStore",
    # Remote
    "RemoteKVBackend",
    "RemoteStoreAdapter",
    "create_backend",
    # Types
    "KVEntry",
    "SyncOperation",
    "OperationType",
    "SyncMode",
    "SyncOutcome",
    "FlushResult",
    "HydrationResult",
    # Diagnostics
    "SyncDiagnostics",
    "DiagnosticRecord",
    # Exceptions
    "KVSyncError",
    "ConfigurationAbsentError",
    "ClientInitError",
    "RemoteCallError",
    "LocalStoreIOError",
]
