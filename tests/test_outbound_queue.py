"""Tests for the debounced outbound queue."""

from __future__ import annotations

import asyncio
import logging

import pytest

from amko_kv_sync.remote import RemoteStoreAdapter
from amko_kv_sync.sync import OutboundQueue
from amko_kv_sync.types import SyncOperation

# Comfortably longer than the 150ms debounce window
SETTLE = 0.4


@pytest.fixture
async def queue(adapter: RemoteStoreAdapter):
    queue = OutboundQueue(adapter)
    yield queue
    await queue.aclose()


class TestEnqueue:
    """Tests for buffering and scheduling."""

    async def test_default_debounce_is_150ms(self, queue: OutboundQueue) -> None:
        assert queue.debounce_seconds == pytest.approx(0.15)

    async def test_enqueue_schedules_one_flush(self, queue: OutboundQueue) -> None:
        assert queue.has_scheduled_flush is False
        queue.enqueue(SyncOperation.set("trx.1", "1"))
        first_task = queue._flush_task
        queue.enqueue(SyncOperation.set("trx.2", "2"))
        queue.enqueue(SyncOperation.delete("trx.3"))

        assert queue.has_scheduled_flush is True
        assert queue._flush_task is first_task
        assert [op.key for op in queue.pending] == ["trx.1", "trx.2", "trx.3"]

    async def test_dropped_in_local_mode(self) -> None:
        queue = OutboundQueue(RemoteStoreAdapter.unavailable())

        assert queue.enqueue(SyncOperation.set("trx.1", "1")) is False
        assert queue.pending == ()
        assert queue.has_scheduled_flush is False
        assert queue.dropped_count == 1

    def test_enqueue_without_event_loop_keeps_operation(self, adapter: RemoteStoreAdapter) -> None:
        queue = OutboundQueue(adapter)
        assert queue.enqueue(SyncOperation.set("trx.1", "1")) is True
        assert queue.has_scheduled_flush is False
        assert len(queue.pending) == 1


class TestDebouncedFlush:
    """Tests for the timer driven flush."""

    async def test_burst_replays_once_in_order(self, queue: OutboundQueue, backend) -> None:
        queue.enqueue(SyncOperation.set("trx.001", "1"))
        queue.enqueue(SyncOperation.set("trx.001", "2"))
        queue.enqueue(SyncOperation.delete("trx.002"))
        queue.enqueue(SyncOperation.set("trx.003", '{"a":1}'))

        await asyncio.sleep(SETTLE)

        assert queue.flush_count == 1
        assert backend.mutations == [
            ("upsert", ("trx.001", 1)),
            ("upsert", ("trx.001", 2)),
            ("delete", "trx.002"),
            ("upsert", ("trx.003", {"a": 1})),
        ]
        assert queue.pending == ()
        assert queue.has_scheduled_flush is False

    async def test_nothing_sent_before_window_elapses(
        self, queue: OutboundQueue, backend
    ) -> None:
        queue.enqueue(SyncOperation.set("trx.001", "1"))
        await asyncio.sleep(0.05)
        assert backend.mutations == []
        await asyncio.sleep(SETTLE)
        assert len(backend.mutations) == 1

    async def test_enqueue_after_flush_schedules_new_flush(
        self, queue: OutboundQueue, backend
    ) -> None:
        queue.enqueue(SyncOperation.set("trx.001", "1"))
        await asyncio.sleep(SETTLE)
        queue.enqueue(SyncOperation.set("trx.002", "2"))
        assert queue.has_scheduled_flush is True
        await asyncio.sleep(SETTLE)

        assert queue.flush_count == 2
        assert [c[1][0] for c in backend.mutations] == ["trx.001", "trx.002"]


class TestFlush:
    """Tests for explicit flushing and failure isolation."""

    async def test_flush_drains_and_cancels_timer(self, queue: OutboundQueue, backend) -> None:
        queue.enqueue(SyncOperation.set("trx.001", "5000"))

        result = await queue.flush()

        assert result.attempted == 1
        assert result.succeeded == 1
        assert result.success is True
        assert queue.has_scheduled_flush is False
        await asyncio.sleep(SETTLE)
        assert queue.flush_count == 1
        assert backend.mutations == [("upsert", ("trx.001", 5000))]

    async def test_flush_empty_queue(self, queue: OutboundQueue) -> None:
        result = await queue.flush()
        assert result.attempted == 0
        assert queue.flush_count == 0

    async def test_partial_batch_failure(self, queue: OutboundQueue, backend, diagnostics) -> None:
        backend.fail_keys.add("trx.002")
        queue.enqueue(SyncOperation.set("trx.001", "1"))
        queue.enqueue(SyncOperation.set("trx.002", "2"))
        queue.enqueue(SyncOperation.set("trx.003", "3"))

        result = await queue.flush()

        assert result.attempted == 3
        assert result.succeeded == 2
        assert [op.key for op in result.failed] == ["trx.002"]
        assert backend.rows == {"trx.001": 1, "trx.003": 3}
        assert diagnostics.error_counts == {"RemoteCallError": 1}

    async def test_failed_operations_are_not_retried(
        self, queue: OutboundQueue, backend
    ) -> None:
        backend.fail_keys.add("trx.001")
        queue.enqueue(SyncOperation.set("trx.001", "1"))
        await queue.flush()
        backend.fail_keys.clear()

        result = await queue.flush()

        assert result.attempted == 0
        assert len(backend.mutations) == 1

    async def test_enqueue_during_flush_goes_to_fresh_queue(
        self, adapter: RemoteStoreAdapter, backend
    ) -> None:
        queue = OutboundQueue(adapter)
        original_upsert = backend.upsert

        async def upsert_then_enqueue(key, value, updated_at):
            await original_upsert(key, value, updated_at)
            if key == "trx.001":
                queue.enqueue(SyncOperation.set("trx.late", "9"))

        backend.upsert = upsert_then_enqueue
        queue.enqueue(SyncOperation.set("trx.001", "1"))

        result = await queue.flush()

        assert result.attempted == 1
        assert [op.key for op in queue.pending] == ["trx.late"]
        assert queue.has_scheduled_flush is True
        await queue.aclose()
        assert "trx.late" in backend.rows

    async def test_aclose_flushes_remaining(self, adapter: RemoteStoreAdapter, backend) -> None:
        queue = OutboundQueue(adapter)
        queue.enqueue(SyncOperation.delete("trx.001"))

        result = await queue.aclose()

        assert result.attempted == 1
        assert backend.mutations == [("delete", "trx.001")]
        assert queue.has_scheduled_flush is False

    async def test_aclose_waits_for_batch_in_flight(
        self, adapter: RemoteStoreAdapter, backend
    ) -> None:
        queue = OutboundQueue(adapter, debounce_seconds=0.05)
        original_upsert = backend.upsert

        async def slow_upsert(key, value, updated_at):
            if backend.closed:
                raise ConnectionError("backend closed")
            await asyncio.sleep(0.05)
            await original_upsert(key, value, updated_at)

        backend.upsert = slow_upsert
        for i in range(3):
            queue.enqueue(SyncOperation.set(f"trx.{i}", str(i)))

        # The timer has fired and the first upsert is under way
        await asyncio.sleep(0.07)
        assert queue.has_scheduled_flush is False

        await queue.aclose()
        await backend.close()

        assert backend.rows == {"trx.0": 0, "trx.1": 1, "trx.2": 2}
        assert queue.last_flush is not None
        assert queue.last_flush.failed == []


class TestScheduledFlushErrors:
    """Errors escaping a scheduled flush are logged, not lost."""

    async def test_unexpected_error_is_logged(
        self,
        queue: OutboundQueue,
        monkeypatch: pytest.MonkeyPatch,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        async def broken_drain():
            raise RuntimeError("drain exploded")

        monkeypatch.setattr(queue, "_drain", broken_drain)
        queue.enqueue(SyncOperation.set("trx.001", "1"))

        with caplog.at_level(logging.ERROR, logger="amko_kv_sync.sync.queue"):
            await asyncio.sleep(SETTLE)

        assert "drain exploded" in caplog.text
        assert queue.has_scheduled_flush is False
