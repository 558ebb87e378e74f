"""
Boot coordination: hydrate before application code observes the store.

The application always runs. Hydration problems and an unavailable remote
are logged and never block startup.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from typing import Any

from .config import KVSyncConfig
from .local.base import LocalStore
from .local.interceptor import SyncedLocalStore
from .sync.engine import KVSyncEngine

logger = logging.getLogger(__name__)

# Background hydration tasks must stay referenced until they finish
_background_tasks: set[asyncio.Task[Any]] = set()


async def _hydrate_quietly(engine: KVSyncEngine) -> None:
    try:
        await engine.hydrate()
    except Exception as e:
        logger.warning(f"Hydration skipped: {e}")


async def boot(
    engine: KVSyncEngine,
    app_entry: Callable[[SyncedLocalStore], Any],
    *,
    await_hydration: bool = True,
) -> Any:
    """Hydrate, install the interceptor, then run the application.

    Args:
        engine: The sync engine for the application's local store
        app_entry: Called with the intercepting store; may be sync or async
        await_hydration: When False, hydration runs in the background while
            the application starts. Writes made before it finishes are not
            synced.

    Returns:
        Whatever ``app_entry`` returns (awaited if it is awaitable).
    """
    if await_hydration:
        await _hydrate_quietly(engine)
    else:
        task = asyncio.create_task(_hydrate_quietly(engine))
        _background_tasks.add(task)
        task.add_done_callback(_background_tasks.discard)

    store = engine.install()
    logger.info(f"Starting application with key-value sync in {engine.status.value} mode")

    result = app_entry(store)
    if inspect.isawaitable(result):
        result = await result
    return result


async def auto(
    local: LocalStore,
    app_entry: Callable[[SyncedLocalStore], Any],
    config: KVSyncConfig | None = None,
    *,
    await_hydration: bool = True,
) -> tuple[KVSyncEngine, Any]:
    """Build an engine from configuration and boot the application.

    Configuration defaults to the AMKO_KV_* environment variables. Missing
    configuration puts the engine in LOCAL mode; the app still runs.

    Returns:
        The engine (for status checks and shutdown) and the app's result.
    """
    engine = await KVSyncEngine.create(local, config)
    result = await boot(engine, app_entry, await_hydration=await_hydration)
    return engine, result
