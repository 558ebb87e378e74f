"""
Tests for the Cosmos DB remote backend.

The container is mocked; these tests check document shape and query text.
"""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from azure.cosmos.exceptions import CosmosResourceNotFoundError

from amko_kv_sync.config import CosmosAuthMethod, KVSyncConfig, RemoteBackendKind
from amko_kv_sync.exceptions import ClientInitError
from amko_kv_sync.remote import create_backend
from amko_kv_sync.remote.cosmos import CosmosRemoteBackend, _get_credential, document_id

CONFIG = KVSyncConfig(
    backend=RemoteBackendKind.COSMOS,
    endpoint="https://amko.documents.azure.com:443/",
    credential="account-key",
    table="kv",
)
NOW = datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC)


def make_container(docs=None):
    container = MagicMock()
    container.upsert_item = AsyncMock()
    container.delete_item = AsyncMock()

    async def query_items(query, parameters):
        for doc in docs or []:
            yield doc

    container.query_items = MagicMock(side_effect=query_items)
    return container


@pytest.fixture
def container():
    return make_container()


@pytest.fixture
def cosmos(container):
    backend = CosmosRemoteBackend(CONFIG)
    backend._container = container
    return backend


class TestDocumentId:
    """Tests for key to document id mapping."""

    def test_plain_key(self):
        assert document_id("trx.001") == "trx.001"

    def test_reserved_characters_quoted(self):
        assert document_id("a/b?c#d") == "a%2Fb%3Fc%23d"


class TestCredential:
    """Tests for credential selection."""

    def test_key_auth_uses_credential(self):
        assert _get_credential(CONFIG) == "account-key"

    def test_key_auth_without_key_fails(self):
        config = KVSyncConfig(backend=RemoteBackendKind.COSMOS, endpoint=CONFIG.endpoint)
        with pytest.raises(ClientInitError):
            _get_credential(config)

    async def test_default_credential_needs_no_key(self):
        pytest.importorskip("azure.identity")
        config = KVSyncConfig(
            backend=RemoteBackendKind.COSMOS,
            endpoint=CONFIG.endpoint,
            cosmos_auth_method=CosmosAuthMethod.DEFAULT_CREDENTIAL,
        )
        assert config.is_configured

        credential = _get_credential(config)
        assert not isinstance(credential, str)
        await credential.close()


class TestCosmosRemoteBackend:
    """Tests for container operations."""

    def test_create_backend_selects_cosmos(self):
        assert isinstance(create_backend(CONFIG), CosmosRemoteBackend)

    def test_requires_endpoint(self):
        with pytest.raises(ClientInitError):
            CosmosRemoteBackend(KVSyncConfig(backend=RemoteBackendKind.COSMOS))

    async def test_upsert_document(self, cosmos, container):
        await cosmos.upsert("akun/1", {"a": 1}, NOW)

        container.upsert_item.assert_awaited_once_with(
            {
                "id": "akun%2F1",
                "key": "akun/1",
                "value": {"a": 1},
                "updated_at": NOW.isoformat(),
            }
        )

    async def test_delete_uses_partition_key(self, cosmos, container):
        await cosmos.delete("trx.001")

        container.delete_item.assert_awaited_once_with(item="trx.001", partition_key="trx.001")

    async def test_delete_missing_is_ignored(self, cosmos, container):
        container.delete_item.side_effect = CosmosResourceNotFoundError(message="gone")

        await cosmos.delete("trx.001")

    async def test_select_query(self):
        container = make_container(
            [
                {"key": "trx.1", "value": 5000, "updated_at": "2024-01-02T03:04:05+00:00"},
                {"key": "akun.a", "value": "hello world"},
            ]
        )
        backend = CosmosRemoteBackend(CONFIG)
        backend._container = container

        entries = await backend.select_by_prefixes(["trx", "akun"])

        kwargs = container.query_items.call_args.kwargs
        assert "STARTSWITH(c.key, @p0, false) OR STARTSWITH(c.key, @p1, false)" in kwargs["query"]
        assert 'c["value"]' in kwargs["query"]
        assert kwargs["parameters"] == [
            {"name": "@p0", "value": "trx"},
            {"name": "@p1", "value": "akun"},
        ]
        assert [(e.key, e.value) for e in entries] == [("trx.1", 5000), ("akun.a", "hello world")]
        assert entries[0].updated_at == NOW

    async def test_empty_prefixes_skip_query(self, cosmos, container):
        assert await cosmos.select_by_prefixes([]) == []
        container.query_items.assert_not_called()

    async def test_uninitialized_backend_raises(self):
        with pytest.raises(RuntimeError):
            await CosmosRemoteBackend(CONFIG).upsert("trx.1", 1, NOW)

    async def test_close_clears_container(self, cosmos):
        await cosmos.close()
        assert cosmos._container is None
