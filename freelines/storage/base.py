"""Key-value contract shared by the durable store implementations."""

from __future__ import annotations

from typing import Any, Optional, Protocol


class KeyValueStore(Protocol):
    """Opaque JSON-value slots persisted across process restarts.

    Every method may raise ``StorageUnavailableError``. Writing the same value
    twice, or deleting an absent key, is harmless.
    """

    def put(self, key: str, value: Any) -> None: ...

    def get(self, key: str) -> Optional[Any]: ...

    def delete(self, key: str) -> None: ...


__all__ = ["KeyValueStore"]
