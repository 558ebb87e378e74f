"""
Value conversion between the local string store and the remote JSON column.

The local store holds strings only. The remote table stores the parsed JSON
value when the string is valid JSON and the raw string otherwise, so that
structured values stay queryable without rejecting malformed ones.
"""

from __future__ import annotations

import json
from typing import Any


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-standard JSON constant: {name}")


def decode_local_value(raw: str) -> Any:
    """Parse a local string into the value stored remotely.

    Strict JSON only: ``NaN``/``Infinity`` are not accepted, since they
    cannot be written to a JSON column. Anything that fails to parse is
    returned unchanged.
    """
    try:
        return json.loads(raw, parse_constant=_reject_constant)
    except (ValueError, TypeError):
        return raw


def encode_remote_value(value: Any) -> str:
    """Serialize a remote value back to the string kept in the local store."""
    if isinstance(value, str):
        return value
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def to_storage_string(value: Any) -> str:
    """Coerce a value to the string the local store persists."""
    return value if isinstance(value, str) else str(value)
