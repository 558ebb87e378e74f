"""
Outbound operation queue with debounced flushing.

Captured local mutations are buffered in memory and replayed against the
remote store shortly after the first one arrives:

1. ``enqueue`` appends the operation
2. If no flush is scheduled, a task is started that sleeps for the
   debounce window and then flushes (later enqueues do not reset it)
3. ``flush`` swaps out the whole buffer and replays it in order

Delivery is at-most-once: failed operations are logged and dropped.
Nothing is persisted, so a crash loses whatever was still buffered.
"""

from __future__ import annotations

import asyncio
import logging
import time

from ..exceptions import RemoteCallError
from ..remote.adapter import RemoteStoreAdapter
from ..types import FlushResult, SyncOperation

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.15


class OutboundQueue:
    """In-memory FIFO of captured operations feeding the remote adapter."""

    def __init__(
        self,
        adapter: RemoteStoreAdapter,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
    ) -> None:
        self._adapter = adapter
        self.debounce_seconds = debounce_seconds
        self._ops: list[SyncOperation] = []
        self._flush_task: asyncio.Task[None] | None = None
        # Timer task whose batch is being replayed right now
        self._drain_task: asyncio.Task[None] | None = None

        self.flush_count = 0
        self.dropped_count = 0
        self.last_flush: FlushResult | None = None

    @property
    def pending(self) -> tuple[SyncOperation, ...]:
        """Snapshot of operations waiting for the next flush."""
        return tuple(self._ops)

    @property
    def has_scheduled_flush(self) -> bool:
        return self._flush_task is not None

    def enqueue(self, op: SyncOperation) -> bool:
        """Buffer an operation and make sure a flush is scheduled.

        Returns:
            False if the operation was dropped because the remote is
            unavailable, True otherwise.
        """
        if not self._adapter.is_available():
            self.dropped_count += 1
            return False

        self._ops.append(op)
        self._schedule_flush()
        return True

    def _schedule_flush(self) -> None:
        if self._flush_task is not None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug(
                f"No running event loop, {len(self._ops)} operations wait for the next flush"
            )
            return
        self._flush_task = loop.create_task(self._flush_after_delay())
        self._flush_task.add_done_callback(self._on_flush_done)

    async def _flush_after_delay(self) -> None:
        await asyncio.sleep(self.debounce_seconds)
        # Enqueues during the drain schedule a fresh flush
        self._flush_task = None
        self._drain_task = asyncio.current_task()
        try:
            await self._drain()
        finally:
            if self._drain_task is asyncio.current_task():
                self._drain_task = None

    def _on_flush_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Scheduled sync flush failed: {error}", exc_info=error)

    async def flush(self) -> FlushResult:
        """Drain the queue now, cancelling any scheduled flush."""
        task = self._flush_task
        if task is not None and task is not asyncio.current_task():
            task.cancel()
        self._flush_task = None
        return await self._drain()

    async def _drain(self) -> FlushResult:
        ops, self._ops = self._ops, []
        result = FlushResult(attempted=len(ops))
        if not ops:
            return result

        self.flush_count += 1
        start = time.monotonic()
        logger.debug(f"Flushing {len(ops)} operations")

        for op in ops:
            try:
                outcome = await self._adapter.apply(op)
            except Exception as e:
                self._adapter.diagnostics.record(
                    RemoteCallError(op.type.name.lower(), op.key, e, op.to_dict())
                )
                result.failed.append(op)
                continue

            if outcome.ok:
                result.succeeded += 1
            else:
                result.failed.append(op)

        result.duration_ms = int((time.monotonic() - start) * 1000)
        if result.failed:
            logger.warning(
                f"Sync flush finished with {len(result.failed)} of {result.attempted} "
                f"operations failed"
            )
        self.last_flush = result
        return result

    async def aclose(self) -> FlushResult:
        """Cancel the scheduled flush, wait for a batch already being
        replayed, then push whatever is still buffered."""
        current = asyncio.current_task()
        task = self._flush_task
        self._flush_task = None
        if task is not None and task is not current:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        draining = self._drain_task
        if draining is not None and draining is not current:
            await asyncio.wait({draining})

        return await self._drain()
