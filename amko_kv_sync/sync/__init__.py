"""
Synchronization engine.

Orchestrates mirroring between a local store and the remote table:
- Capture: local writes to eligible keys become queued operations
- Push: the debounced queue replays operations against the remote
- Hydrate: remote entries are copied into the local store at startup
"""

from .engine import KVSyncEngine
from .hydrator import hydrate_local_store
from .queue import DEFAULT_DEBOUNCE_SECONDS, OutboundQueue

__all__ = [
    "KVSyncEngine",
    "OutboundQueue",
    "hydrate_local_store",
    "DEFAULT_DEBOUNCE_SECONDS",
]
