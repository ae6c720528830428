"""Interface shared by every platform location source."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Protocol

# (latitude, longitude, elevation_m, accuracy_m, speed_ms | None, timestamp_ms)
LocationCallback = Callable[[float, float, float, float, Optional[float], int], None]


@dataclass(frozen=True, slots=True)
class WatchHandle:
    """Opaque token returned by ``start_watching``."""

    watch_id: str
    source: str


class LocationSource(Protocol):
    """A stream of raw location fixes.

    ``start_watching`` raises ``LocationPermissionError`` when access is
    refused and ``LocationUnavailableError`` when there is nothing to watch.
    Once ``stop_watching`` returns, the callback is never invoked again for
    that handle.
    """

    name: str

    def start_watching(self, callback: LocationCallback) -> WatchHandle: ...

    def stop_watching(self, handle: WatchHandle) -> None: ...


__all__ = ["LocationCallback", "LocationSource", "WatchHandle"]
