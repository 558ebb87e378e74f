"""Tests for the sync interceptor wrapping a local store."""

from __future__ import annotations

import pytest

from amko_kv_sync.local import MemoryLocalStore, SyncedLocalStore
from amko_kv_sync.remote import RemoteStoreAdapter
from amko_kv_sync.sync import KVSyncEngine
from amko_kv_sync.types import OperationType


class TestPassThrough:
    """The wrapped store's behaviour is unchanged."""

    async def test_set_writes_through_immediately(
        self, engine: KVSyncEngine, local_store: MemoryLocalStore
    ) -> None:
        store = engine.install()
        assert store.set("trx.001", "5000") is None
        assert local_store.get("trx.001") == "5000"
        assert store.get("trx.001") == "5000"

    async def test_remove_writes_through_immediately(
        self, engine: KVSyncEngine, local_store: MemoryLocalStore
    ) -> None:
        local_store.set("trx.001", "5000")
        store = engine.install()
        assert store.remove("trx.001") is None
        assert local_store.get("trx.001") is None

    async def test_reads_pass_through(
        self, engine: KVSyncEngine, local_store: MemoryLocalStore
    ) -> None:
        local_store.set("theme", "dark")
        store = engine.install()
        assert store.keys() == ["theme"]
        assert "theme" in store
        assert len(store) == 1

    async def test_local_mode_still_writes(
        self, local_engine: KVSyncEngine, local_store: MemoryLocalStore
    ) -> None:
        store = local_engine.install()
        store.set("trx.001", "5000")
        assert local_store.get("trx.001") == "5000"
        assert local_engine.queue.pending == ()


class TestCapture:
    """Mutations of eligible keys are captured."""

    async def test_eligible_set_is_enqueued(self, engine: KVSyncEngine) -> None:
        engine.install().set("trx.001", "5000")

        (op,) = engine.queue.pending
        assert op.type == OperationType.SET
        assert op.key == "trx.001"
        assert op.value == "5000"

    async def test_eligible_remove_is_enqueued(self, engine: KVSyncEngine) -> None:
        engine.install().remove("akun.profile")

        (op,) = engine.queue.pending
        assert op.type == OperationType.DELETE
        assert op.key == "akun.profile"
        assert op.value is None

    async def test_ineligible_keys_are_ignored(self, engine: KVSyncEngine) -> None:
        store = engine.install()
        store.set("theme", "dark")
        store.remove("theme")
        assert engine.queue.pending == ()

    async def test_value_coerced_to_string_before_queueing(self, engine: KVSyncEngine) -> None:
        engine.install().set("trx.total", 5000)
        assert engine.queue.pending[0].value == "5000"

    async def test_no_capture_while_hydrating(self, engine: KVSyncEngine) -> None:
        store = engine.install()
        with engine._hydration_scope():
            store.set("trx.001", "5000")
            store.remove("trx.002")
        assert engine.queue.pending == ()
        assert store.get("trx.001") == "5000"


class TestInstallIdempotence:
    """Installing twice never doubles capture."""

    async def test_install_returns_same_wrapper(self, engine: KVSyncEngine) -> None:
        assert engine.install() is engine.install()
        assert engine.store is engine.install()

    async def test_double_install_enqueues_once(self, engine: KVSyncEngine) -> None:
        engine.install()
        store = engine.install()
        store.set("trx.001", "5000")
        assert len(engine.queue.pending) == 1

    async def test_wrapping_a_wrapper_unwraps(
        self, engine: KVSyncEngine, local_store: MemoryLocalStore, adapter: RemoteStoreAdapter
    ) -> None:
        other = KVSyncEngine(engine.install(), adapter)
        try:
            assert other.local is local_store
            other.install().set("trx.001", "5000")
            assert len(other.queue.pending) == 1
            assert engine.queue.pending == ()
        finally:
            await other.aclose()

    def test_wrapper_rejects_wrapper(self, local_store: MemoryLocalStore) -> None:
        engine = KVSyncEngine(local_store, RemoteStoreAdapter.unavailable())
        with pytest.raises(TypeError):
            SyncedLocalStore(engine.install(), engine)
