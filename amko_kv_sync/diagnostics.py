"""
Diagnostics sink for sync failures.

Every failure in the sync subsystem ends here: it is logged once and kept
in a bounded list of recent errors so hosts can inspect sync health
without the errors ever reaching application code.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from .exceptions import KVSyncError

logger = logging.getLogger(__name__)


@dataclass
class DiagnosticRecord:
    """A recorded sync failure."""

    error: KVSyncError
    context: dict[str, Any] = field(default_factory=dict)
    recorded_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": type(self.error).__name__,
            "message": self.error.message,
            "details": self.error.details,
            "context": self.context,
            "recorded_at": self.recorded_at.isoformat(),
        }


class SyncDiagnostics:
    """Collects sync errors and counters."""

    def __init__(self, max_records: int = 50) -> None:
        self._records: deque[DiagnosticRecord] = deque(maxlen=max_records)
        self._counts: dict[str, int] = {}

    def record(
        self,
        error: KVSyncError,
        level: int = logging.WARNING,
        **context: Any,
    ) -> DiagnosticRecord:
        """Log an error and keep it in the recent error list."""
        record = DiagnosticRecord(error=error, context=context)
        self._records.append(record)
        name = type(error).__name__
        self._counts[name] = self._counts.get(name, 0) + 1
        if context:
            logger.log(level, f"{error.message} {context}")
        else:
            logger.log(level, error.message)
        return record

    @property
    def recent_errors(self) -> list[DiagnosticRecord]:
        return list(self._records)

    @property
    def error_counts(self) -> dict[str, int]:
        return dict(self._counts)

    @property
    def total_errors(self) -> int:
        return sum(self._counts.values())

    def clear(self) -> None:
        self._records.clear()
        self._counts.clear()
