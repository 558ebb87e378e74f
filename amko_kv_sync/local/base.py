"""
Abstract local key-value store interface.

The local store is synchronous and string-only, the same model as browser
localStorage. Writes are durable as soon as ``set``/``remove`` return.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from typing import Any

from ..values import to_storage_string


class LocalStore(ABC):
    """Synchronous string key-value store.

    All local store implementations (memory, file, and the sync
    interceptor wrapping them) implement this interface.
    """

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the stored string, or None if the key is absent."""
        ...

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store ``value`` (coerced to ``str``) under ``key``."""
        ...

    @abstractmethod
    def remove(self, key: str) -> None:
        """Remove ``key``. Removing a missing key is not an error."""
        ...

    @abstractmethod
    def keys(self) -> list[str]:
        """Return all stored keys in insertion order."""
        ...

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key) is not None

    def __len__(self) -> int:
        return len(self.keys())

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())


class MemoryLocalStore(LocalStore):
    """In-process local store backed by a dict."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, str] = {}
        for key, value in (initial or {}).items():
            self._data[key] = to_storage_string(value)

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = to_storage_string(value)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)

    def snapshot(self) -> dict[str, str]:
        return dict(self._data)
