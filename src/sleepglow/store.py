"""Key-value store transports for baseline and history.

The engine only needs ``get``/``set`` on string keys. ``MemoryStore`` is
for tests and ephemeral sessions; ``JsonFileStore`` persists to a single
JSON document on local disk.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Dict, Optional, Protocol, Union

from sleepglow.config import data_home

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """String-keyed get/set store."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...


class MemoryStore:
    """Dict-backed store."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise TypeError(f"Store values must be str, got {type(value).__name__}")
        with self._lock:
            self._data[key] = value

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None


class JsonFileStore:
    """Store backed by one JSON object on disk.

    Writes go to a temp file that then replaces the original, so a crash
    mid-write leaves the previous document intact.

    Args:
        path: JSON file path. Defaults to ``store.json`` under
            :func:`sleepglow.config.data_home`, resolved when the store is built.
    """

    FILENAME = "store.json"

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path is not None else data_home() / self.FILENAME
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            value = self._load().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise TypeError(f"Store values must be str, got {type(value).__name__}")
        with self._lock:
            data = self._load()
            data[key] = value
            self._dump(data)

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Store file %s unreadable, treating as empty: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Store file %s is not a JSON object, treating as empty", self.path)
            return {}
        return data

    def _dump(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        os.replace(tmp_path, self.path)


__all__ = ["KeyValueStore", "MemoryStore", "JsonFileStore"]
