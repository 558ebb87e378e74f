"""Prefix based filter deciding which keys are mirrored remotely."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from .config import DEFAULT_SYNC_PREFIXES, parse_prefixes


class KeyFilter:
    """Case-sensitive, literal "starts with" filter over a fixed prefix set."""

    def __init__(self, prefixes: str | Iterable[str] = DEFAULT_SYNC_PREFIXES) -> None:
        # A string is one comma separated list, never a sequence of characters
        if not isinstance(prefixes, str):
            prefixes = tuple(prefixes)
        self._prefixes = parse_prefixes(prefixes)

    @property
    def prefixes(self) -> tuple[str, ...]:
        return self._prefixes

    def is_sync_eligible(self, key: Any) -> bool:
        """Return True if ``key`` is a non-empty string starting with a prefix."""
        if not key or not isinstance(key, str):
            return False
        return key.startswith(self._prefixes)

    __call__ = is_sync_eligible

    def __repr__(self) -> str:
        return f"KeyFilter(prefixes={list(self._prefixes)!r})"


_default_filter = KeyFilter()


def is_sync_eligible(key: Any) -> bool:
    """Check ``key`` against the default sync prefixes."""
    return _default_filter.is_sync_eligible(key)
