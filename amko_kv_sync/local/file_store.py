"""
JSON file backed local store.

Keeps the whole store as one JSON object on disk:
- Loaded once at construction
- Every set/remove rewrites the file atomically (temp file + rename)
- Writes are durable when the call returns, like localStorage
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from ..exceptions import LocalStoreIOError
from ..values import to_storage_string
from .base import LocalStore

logger = logging.getLogger(__name__)


def _read_store_file(path: Path) -> dict[str, str]:
    """Read a store file, returning an empty dict if it doesn't exist."""
    try:
        if not path.exists():
            return {}
        content = path.read_text(encoding="utf-8")
        data = json.loads(content) if content.strip() else {}
    except json.JSONDecodeError as e:
        raise LocalStoreIOError("parse_json", str(path), e) from e
    except OSError as e:
        raise LocalStoreIOError("read_json", str(path), e) from e

    if not isinstance(data, dict):
        raise LocalStoreIOError("parse_json", str(path), ValueError("expected a JSON object"))
    return {str(k): to_storage_string(v) for k, v in data.items()}


def _write_store_file(path: Path, data: dict[str, str]) -> None:
    """Write the store file atomically using temp file + rename."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise LocalStoreIOError("create_directory", str(path.parent), e) from e

    fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix=".tmp_", suffix=".json")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
            f.flush()
            os.fsync(f.fileno())
        os.replace(temp_path, path)
    except Exception as e:
        try:
            os.remove(temp_path)
        except OSError:
            pass
        raise LocalStoreIOError("write_json", str(path), e) from e


class JsonFileLocalStore(LocalStore):
    """Local store persisted to a single JSON file.

    Example:
        >>> store = JsonFileLocalStore("~/.amko/local_store.json")
        >>> store.set("trx.001", "5000")
        >>> store.get("trx.001")
        '5000'
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()
        self._data = _read_store_file(self.path)
        logger.debug(f"Loaded {len(self._data)} keys from {self.path}")

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        updated = dict(self._data)
        updated[key] = to_storage_string(value)
        _write_store_file(self.path, updated)
        self._data = updated

    def remove(self, key: str) -> None:
        if key not in self._data:
            return
        updated = dict(self._data)
        del updated[key]
        _write_store_file(self.path, updated)
        self._data = updated

    def keys(self) -> list[str]:
        return list(self._data)

    def reload(self) -> None:
        """Re-read the file, picking up changes made by other processes."""
        self._data = _read_store_file(self.path)
