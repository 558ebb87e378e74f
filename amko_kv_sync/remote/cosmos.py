"""
Cosmos DB remote backend.

Stores each key as one document in a container partitioned by key.

Document schema:
{
    "id": "{url-quoted key}",
    "key": "{key}",
    "value": <any JSON>,
    "updated_at": "{iso_timestamp}"
}

Supports:
- Key-based authentication (account key as credential)
- Azure AD via DefaultAzureCredential
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime
from typing import Any
from urllib.parse import quote

from azure.cosmos import PartitionKey
from azure.cosmos.aio import ContainerProxy, CosmosClient
from azure.cosmos.exceptions import CosmosResourceNotFoundError

from ..config import CosmosAuthMethod, KVSyncConfig
from ..exceptions import ClientInitError
from ..types import KVEntry
from .base import RemoteKVBackend

logger = logging.getLogger(__name__)


def _get_credential(config: KVSyncConfig) -> Any:
    """Get the credential for the configured auth method."""
    if config.cosmos_auth_method == CosmosAuthMethod.KEY:
        if not config.credential:
            raise ClientInitError("cosmos", config.endpoint, ValueError("account key required"))
        return config.credential

    try:
        from azure.identity.aio import DefaultAzureCredential
    except ImportError as e:
        raise ClientInitError(
            "cosmos",
            config.endpoint,
            ImportError(
                "azure-identity package required for Azure AD authentication. "
                "Install with: pip install azure-identity"
            ),
        ) from e
    return DefaultAzureCredential()


def document_id(key: str) -> str:
    """Cosmos ids cannot contain '/', '\\', '?' or '#'; quote the key."""
    return quote(key, safe="")


class CosmosRemoteBackend(RemoteKVBackend):
    """Key-value container in Azure Cosmos DB.

    Partition key path: /key

    Prefix queries use ``STARTSWITH(c.key, @prefix, false)``, which is a
    literal, case-sensitive comparison, so no escaping is needed.
    """

    name = "cosmos"

    def __init__(self, config: KVSyncConfig) -> None:
        if not config.endpoint:
            raise ClientInitError("cosmos", None, ValueError("Cosmos endpoint is required"))
        self.config = config
        self._credential: Any = None
        self._client: CosmosClient | None = None
        self._container: ContainerProxy | None = None

    async def initialize(self) -> None:
        if self._container is not None:
            return

        self._credential = _get_credential(self.config)
        client = CosmosClient(self.config.endpoint, credential=self._credential)  # type: ignore[arg-type]
        self._client = client
        try:
            database = await client.create_database_if_not_exists(id=self.config.cosmos_database)
            self._container = await database.create_container_if_not_exists(
                id=self.config.table,
                partition_key=PartitionKey(path="/key"),
            )
        except Exception:
            await self.close()
            raise

        logger.info(
            f"Connected to Cosmos DB: {self.config.endpoint} "
            f"(database={self.config.cosmos_database}, container={self.config.table}, "
            f"auth={self.config.cosmos_auth_method.value})"
        )

    def _get_container(self) -> ContainerProxy:
        if self._container is None:
            raise RuntimeError("Cosmos backend is not initialized")
        return self._container

    async def upsert(self, key: str, value: Any, updated_at: datetime) -> None:
        container = self._get_container()
        await container.upsert_item(
            {
                "id": document_id(key),
                "key": key,
                "value": value,
                "updated_at": updated_at.isoformat(),
            }
        )

    async def delete(self, key: str) -> None:
        container = self._get_container()
        try:
            await container.delete_item(item=document_id(key), partition_key=key)
        except CosmosResourceNotFoundError:
            pass  # Already gone

    async def select_by_prefixes(self, prefixes: Sequence[str]) -> list[KVEntry]:
        if not prefixes:
            return []

        container = self._get_container()
        clauses = " OR ".join(f"STARTSWITH(c.key, @p{i}, false)" for i in range(len(prefixes)))
        # "value" is a reserved word in the Cosmos query language
        query = f'SELECT c.key, c["value"], c.updated_at FROM c WHERE {clauses}'
        params: list[dict[str, Any]] = [
            {"name": f"@p{i}", "value": prefix} for i, prefix in enumerate(prefixes)
        ]

        entries: list[KVEntry] = []
        async for doc in container.query_items(query=query, parameters=params):
            entries.append(KVEntry.from_dict(doc))
        return entries

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
        self._container = None
        if self._credential is not None and hasattr(self._credential, "close"):
            await self._credential.close()
        self._credential = None
