"""Client-local persistent key/value storage.

Mirrors the browser ``localStorage`` contract (string keys and values)
with a JSON file on disk. ``MemoryStorage`` is the non-persistent
variant.
"""

import json
import logging
from pathlib import Path
from typing import Dict, Optional

from dredge.config import DEFAULT_STORAGE_FILE

logger = logging.getLogger(__name__)


class MemoryStorage:
    """In-process storage; forgotten when the process exits."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class LocalStorage(MemoryStorage):
    """Storage persisted to a JSON file (default ``~/.dredge/storage.json``).

    The file is read once on construction and rewritten on every ``set``.
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = Path(path) if path is not None else DEFAULT_STORAGE_FILE
        super().__init__(self._read())

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Could not read storage file %s: %s. Starting fresh.", self.path, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Storage file %s is not a JSON object. Starting fresh.", self.path)
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def set(self, key: str, value: str) -> None:
        super().set(key, value)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as fh:
            json.dump(self._data, fh, indent=2, sort_keys=True)
