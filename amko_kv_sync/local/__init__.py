"""
Local key-value stores.

Provides the synchronous string store interface, in-memory and JSON file
implementations, and the interceptor that captures writes for sync.
"""

from .base import LocalStore, MemoryLocalStore
from .file_store import JsonFileLocalStore
from .interceptor import SyncedLocalStore

__all__ = [
    "LocalStore",
    "MemoryLocalStore",
    "JsonFileLocalStore",
    "SyncedLocalStore",
]
