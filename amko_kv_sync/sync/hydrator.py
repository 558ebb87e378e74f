"""
Startup hydration: copy remote entries into the local store.

Rows are written through the raw local store, never through the sync
interceptor, so hydration cannot produce outbound operations no matter
how the interceptor is installed.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from ..local.base import LocalStore
from ..local.interceptor import SyncedLocalStore
from ..remote.adapter import RemoteStoreAdapter
from ..types import HydrationResult
from ..values import encode_remote_value

logger = logging.getLogger(__name__)


async def hydrate_local_store(
    adapter: RemoteStoreAdapter,
    local: LocalStore,
    prefixes: Sequence[str],
) -> HydrationResult:
    """Fetch all remote entries matching ``prefixes`` into ``local``.

    Args:
        adapter: Remote store adapter
        local: The raw (non-intercepted) local store
        prefixes: Key prefixes to fetch

    Returns:
        HydrationResult with row counts. A query failure is reported in
        ``error`` and leaves the local store untouched.
    """
    if isinstance(local, SyncedLocalStore):
        local = local.inner

    if not adapter.is_available():
        logger.debug("Remote unavailable, skipping hydration")
        return HydrationResult(remote_available=False)

    outcome = await adapter.query_by_prefixes(prefixes)
    if not outcome.ok:
        logger.warning("Hydration aborted: remote query failed")
        return HydrationResult(error=outcome.error)

    rows = outcome.value or []
    result = HydrationResult(fetched=len(rows))
    for row in rows:
        try:
            local.set(row.key, encode_remote_value(row.value))
            result.written += 1
        except Exception as e:
            result.skipped += 1
            logger.warning(f"Skipping hydrated key {row.key!r}: {e}")

    logger.info(f"Hydrated {result.written} keys from remote ({result.skipped} skipped)")
    return result
