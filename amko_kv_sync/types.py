"""
Core data types for key-value sync.

Defines the remote entry shape, the outbound operation descriptor,
the process sync mode and the explicit results returned by remote
calls, flushes and hydration.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Generic, TypeVar

from .exceptions import KVSyncError

T = TypeVar("T")


class SyncMode(Enum):
    """Operating mode of the sync engine, fixed once the remote is set up."""

    REMOTE = "REMOTE"  # Remote store available, writes are mirrored
    LOCAL = "LOCAL"  # Local-only persistence


class OperationType(Enum):
    """Kind of local mutation captured for replay."""

    SET = "set"
    DELETE = "del"


@dataclass(frozen=True)
class KVEntry:
    """A row of the remote key-value table."""

    key: str
    value: Any
    updated_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "value": self.value,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> KVEntry:
        updated_at = data.get("updated_at")
        if isinstance(updated_at, str):
            try:
                updated_at = datetime.fromisoformat(updated_at.replace("Z", "+00:00"))
            except ValueError:
                updated_at = None
        elif not isinstance(updated_at, datetime):
            updated_at = None
        return cls(key=data["key"], value=data.get("value"), updated_at=updated_at)


@dataclass(frozen=True)
class SyncOperation:
    """A local mutation waiting to be replayed against the remote store."""

    type: OperationType
    key: str
    value: str | None = None
    enqueued_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def set(cls, key: str, value: str) -> SyncOperation:
        return cls(type=OperationType.SET, key=key, value=value)

    @classmethod
    def delete(cls, key: str) -> SyncOperation:
        return cls(type=OperationType.DELETE, key=key)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type.value, "key": self.key}
        if self.type == OperationType.SET:
            data["value"] = self.value
        return data


@dataclass
class SyncOutcome(Generic[T]):
    """Explicit result of a remote operation.

    Remote calls never raise into callers. They return an outcome that is
    either ok (with an optional value) or carries the error that occurred.
    ``skipped`` marks no-op successes in LOCAL mode.
    """

    ok: bool
    value: T | None = None
    error: KVSyncError | None = None
    skipped: bool = False

    @classmethod
    def success(cls, value: T | None = None) -> SyncOutcome[T]:
        return cls(ok=True, value=value)

    @classmethod
    def noop(cls, value: T | None = None) -> SyncOutcome[T]:
        return cls(ok=True, value=value, skipped=True)

    @classmethod
    def failure(cls, error: KVSyncError) -> SyncOutcome[T]:
        return cls(ok=False, error=error)


@dataclass
class FlushResult:
    """Result of draining the outbound queue once."""

    attempted: int = 0
    succeeded: int = 0
    failed: list[SyncOperation] = field(default_factory=list)
    duration_ms: int = 0

    @property
    def success(self) -> bool:
        return not self.failed


@dataclass
class HydrationResult:
    """Result of a hydration attempt."""

    fetched: int = 0
    written: int = 0
    skipped: int = 0
    error: KVSyncError | None = None
    remote_available: bool = True

    @property
    def success(self) -> bool:
        return self.error is None
