"""
Configuration for key-value sync.

Configuration can be provided directly, via environment variables or via a
YAML settings file.

Environment Variables:
    AMKO_KV_BACKEND: Remote backend (postgrest, cosmos, sqlite; default: postgrest)
    AMKO_KV_ENDPOINT: Remote endpoint (Supabase URL, Cosmos URL or SQLite path)
    AMKO_KV_KEY: Access credential (Supabase anon key or Cosmos account key)
    AMKO_KV_TABLE: Remote table / container name (default: amko_kv)
    AMKO_KV_PREFIXES: Comma separated list of key prefixes to sync
    AMKO_KV_DEBOUNCE_MS: Debounce window before a flush (default: 150)
    AMKO_KV_COSMOS_DATABASE: Cosmos DB database name (default: amko)
    AMKO_KV_COSMOS_AUTH_METHOD: Cosmos auth method (key, default_credential)

YAML file (``kv_sync`` section):

```yaml
kv_sync:
  backend: postgrest
  endpoint: "https://xyzcompany.supabase.co"
  key: "anon-key"
  prefixes: ["amko.", "akun", "trx"]
  debounce_ms: 150
```
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

DEFAULT_TABLE = "amko_kv"
DEFAULT_DEBOUNCE_MS = 150

# UI preferences are intentionally left out
DEFAULT_SYNC_PREFIXES: tuple[str, ...] = (
    "amko.",
    "akun",
    "transMini",
    "transaksi",
    "trx",
    "mutasi",
)


class RemoteBackendKind(Enum):
    """Which remote backend holds the mirrored table.

    POSTGREST: Supabase / PostgREST HTTP API
    COSMOS: Azure Cosmos DB container
    SQLITE: SQLite database file (shared volume, tests, single host)
    """

    POSTGREST = "postgrest"
    COSMOS = "cosmos"
    SQLITE = "sqlite"


class CosmosAuthMethod(Enum):
    """Authentication method for Cosmos DB.

    KEY: Account key passed as the credential
    DEFAULT_CREDENTIAL: Azure DefaultAzureCredential (CLI, managed identity, env)
    """

    KEY = "key"
    DEFAULT_CREDENTIAL = "default_credential"


def parse_prefixes(raw: str | list[str] | tuple[str, ...] | None) -> tuple[str, ...]:
    """Normalize a prefix list from config.

    Accepts a comma separated string or a sequence. Blank entries are
    dropped and order is preserved. ``None`` yields the default prefixes.
    """
    if raw is None:
        return DEFAULT_SYNC_PREFIXES
    items = raw.split(",") if isinstance(raw, str) else list(raw)
    prefixes: list[str] = []
    for item in items:
        if not isinstance(item, str):
            continue
        item = item.strip()
        if item and item not in prefixes:
            prefixes.append(item)
    return tuple(prefixes)


@dataclass
class KVSyncConfig:
    """Configuration for the sync engine and its remote backend.

    Attributes:
        backend: Remote backend kind
        endpoint: Remote endpoint URL (or database path for SQLite)
        credential: Access credential (anon key / account key)
        table: Remote table or container name
        prefixes: Key prefixes eligible for sync
        debounce_ms: Delay between the first buffered operation and its flush
        cosmos_database: Cosmos DB database name
        cosmos_auth_method: Cosmos DB authentication method
        request_timeout: Timeout in seconds for HTTP backends
        max_recent_errors: How many recent errors the diagnostics sink keeps
        options: Extra backend specific options
    """

    backend: RemoteBackendKind = RemoteBackendKind.POSTGREST
    endpoint: str | None = None
    credential: str | None = None
    table: str = DEFAULT_TABLE
    prefixes: tuple[str, ...] = DEFAULT_SYNC_PREFIXES
    debounce_ms: int = DEFAULT_DEBOUNCE_MS

    # Cosmos DB settings
    cosmos_database: str = "amko"
    cosmos_auth_method: CosmosAuthMethod = CosmosAuthMethod.KEY

    request_timeout: float = 30.0
    max_recent_errors: int = 50

    options: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.prefixes = parse_prefixes(self.prefixes)

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000

    def missing_settings(self) -> list[str]:
        """Names of required settings that are not set for this backend."""
        missing: list[str] = []
        if not self.endpoint:
            missing.append("endpoint")
        if self.backend == RemoteBackendKind.SQLITE:
            return missing
        if self.backend == RemoteBackendKind.COSMOS and (
            self.cosmos_auth_method == CosmosAuthMethod.DEFAULT_CREDENTIAL
        ):
            return missing
        if not self.credential:
            missing.append("credential")
        return missing

    @property
    def is_configured(self) -> bool:
        """True when endpoint and credential are present for the backend."""
        return not self.missing_settings()

    @classmethod
    def from_environment(cls) -> KVSyncConfig:
        """Create configuration from AMKO_KV_* environment variables."""
        backend_str = os.environ.get("AMKO_KV_BACKEND", "postgrest")
        try:
            backend = RemoteBackendKind(backend_str.lower())
        except ValueError:
            logger.warning(f"Unknown AMKO_KV_BACKEND {backend_str!r}, using postgrest")
            backend = RemoteBackendKind.POSTGREST

        auth_method_str = os.environ.get("AMKO_KV_COSMOS_AUTH_METHOD", "key")
        try:
            auth_method = CosmosAuthMethod(auth_method_str.lower())
        except ValueError:
            auth_method = CosmosAuthMethod.KEY

        debounce_str = os.environ.get("AMKO_KV_DEBOUNCE_MS", str(DEFAULT_DEBOUNCE_MS))
        try:
            debounce_ms = int(debounce_str)
        except ValueError:
            debounce_ms = DEFAULT_DEBOUNCE_MS

        return cls(
            backend=backend,
            endpoint=os.environ.get("AMKO_KV_ENDPOINT") or None,
            credential=os.environ.get("AMKO_KV_KEY") or None,
            table=os.environ.get("AMKO_KV_TABLE", DEFAULT_TABLE),
            prefixes=parse_prefixes(os.environ.get("AMKO_KV_PREFIXES")),
            debounce_ms=debounce_ms,
            cosmos_database=os.environ.get("AMKO_KV_COSMOS_DATABASE", "amko"),
            cosmos_auth_method=auth_method,
        )

    @classmethod
    def from_yaml(cls, path: str | Path, section: str = "kv_sync") -> KVSyncConfig:
        """Create configuration from the ``kv_sync`` section of a YAML file.

        A missing or unreadable file yields the default (unconfigured)
        configuration, which puts the engine in LOCAL mode.
        """
        config_path = Path(path)
        if not config_path.exists():
            return cls()

        try:
            data = yaml.safe_load(config_path.read_text()) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Could not read sync config {config_path}: {e}")
            return cls()

        if not isinstance(data, dict):
            return cls()

        settings: dict[str, Any] = data.get(section) or {}
        if not isinstance(settings, dict):
            return cls()

        try:
            backend = RemoteBackendKind(str(settings.get("backend", "postgrest")).lower())
        except ValueError:
            backend = RemoteBackendKind.POSTGREST

        try:
            auth_method = CosmosAuthMethod(
                str(settings.get("cosmos_auth_method", "key")).lower()
            )
        except ValueError:
            auth_method = CosmosAuthMethod.KEY

        try:
            debounce_ms = int(settings.get("debounce_ms", DEFAULT_DEBOUNCE_MS))
        except (TypeError, ValueError):
            logger.warning(f"Invalid debounce_ms in {config_path}, using {DEFAULT_DEBOUNCE_MS}")
            debounce_ms = DEFAULT_DEBOUNCE_MS

        try:
            request_timeout = float(settings.get("request_timeout", 30.0))
        except (TypeError, ValueError):
            logger.warning(f"Invalid request_timeout in {config_path}, using 30.0")
            request_timeout = 30.0

        return cls(
            backend=backend,
            endpoint=settings.get("endpoint"),
            credential=settings.get("key") or settings.get("credential"),
            table=settings.get("table", DEFAULT_TABLE),
            prefixes=parse_prefixes(settings.get("prefixes")),
            debounce_ms=debounce_ms,
            cosmos_database=settings.get("cosmos_database", "amko"),
            cosmos_auth_method=auth_method,
            request_timeout=request_timeout,
            options=settings.get("options") or {},
        )
