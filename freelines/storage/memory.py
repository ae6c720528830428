"""In-process key-value store (tests, and runs without a writable disk)."""

from __future__ import annotations

import copy
from threading import RLock
from typing import Any, Dict, Optional


class MemoryStore:
    """Thread-safe dict store; values are deep-copied on the way in and out."""

    def __init__(self) -> None:
        self._lock = RLock()
        self._data: Dict[str, Any] = {}

    def put(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = copy.deepcopy(value)

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            value = self._data.get(key)
            return None if value is None else copy.deepcopy(value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._data)


__all__ = ["MemoryStore"]
