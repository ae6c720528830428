"""JSON file backed key-value store.

Each key is written to its own document inside a base directory. Writes go to
a temporary file which then replaces the target, so a crash mid-write leaves
either the previous document or the new one, never a truncated file.
"""

from __future__ import annotations

import json
import logging
import re
import threading
from pathlib import Path
from typing import Any, Optional

from ..config import STORAGE_DIR
from ..errors import StorageUnavailableError
from ..utils import json_dumps_sorted

_LOGGER = logging.getLogger(__name__)

_SAFE_KEY = re.compile(r"[^A-Za-z0-9_.-]")


class JsonFileStore:
    """Persistent store keeping one JSON document per key."""

    def __init__(self, base_dir: str | Path = STORAGE_DIR) -> None:
        base = Path(base_dir)
        self._base_dir = base if base.is_absolute() else Path.cwd() / base
        self._lock = threading.Lock()

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def _file_path(self, key: str) -> Path:
        return self._base_dir / f"{_SAFE_KEY.sub('_', key)}.json"

    def _read_file(self, path: Path) -> Optional[Any]:
        try:
            with path.open("r", encoding="utf-8") as handle:
                return json.load(handle)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as exc:
            raise StorageUnavailableError(f"Failed reading {path}: {exc}") from exc

    def _write_file(self, path: Path, value: Any) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = path.with_suffix(".tmp")
        with temp_path.open("w", encoding="utf-8") as handle:
            json.dump(value, handle, ensure_ascii=True)
        temp_path.replace(path)

    def put(self, key: str, value: Any) -> None:
        path = self._file_path(key)
        with self._lock:
            try:
                current = self._read_file(path)
            except StorageUnavailableError:
                current = None
            if current is not None and json_dumps_sorted(current) == json_dumps_sorted(
                value
            ):
                return
            try:
                self._write_file(path, value)
            except (OSError, TypeError, ValueError) as exc:
                raise StorageUnavailableError(
                    f"Failed writing {path}: {exc}"
                ) from exc
        _LOGGER.debug("Stored key=%s path=%s", key, path)

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            return self._read_file(self._file_path(key))

    def delete(self, key: str) -> None:
        path = self._file_path(key)
        with self._lock:
            try:
                path.unlink(missing_ok=True)
            except OSError as exc:
                raise StorageUnavailableError(
                    f"Failed deleting {path}: {exc}"
                ) from exc


__all__ = ["JsonFileStore"]
