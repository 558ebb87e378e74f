"""
Abstract remote key-value backend interface.

Defines the contract every remote table backend implements. Backends raise
on failure; the RemoteStoreAdapter is responsible for turning failures into
outcomes and for the LOCAL-mode fallback.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from datetime import datetime
from typing import Any

from ..types import KVEntry


def escape_like_pattern(prefix: str, escape: str = "\\") -> str:
    """Escape LIKE metacharacters so ``prefix`` matches literally.

    Args:
        prefix: Literal key prefix
        escape: Escape character declared with the LIKE operator

    Returns:
        The escaped prefix (without the trailing ``%`` wildcard)
    """
    out = []
    for ch in prefix:
        if ch in (escape, "%", "_"):
            out.append(escape)
        out.append(ch)
    return "".join(out)


class RemoteKVBackend(ABC):
    """Table-shaped remote store with columns key, value and updated_at.

    Upserts overwrite the row with the same key (last write wins).
    """

    name: str = "remote"

    @abstractmethod
    async def initialize(self) -> None:
        """Create the client connection (and the table, where supported).

        Raises:
            Exception: If the client cannot be constructed or reached
        """
        ...

    @abstractmethod
    async def upsert(self, key: str, value: Any, updated_at: datetime) -> None:
        """Insert or overwrite the row for ``key``."""
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Delete the row for ``key``. Deleting a missing key is not an error."""
        ...

    @abstractmethod
    async def select_by_prefixes(self, prefixes: Sequence[str]) -> list[KVEntry]:
        """Return all rows whose key starts with any of ``prefixes``."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close the connection and cleanup resources."""
        ...
