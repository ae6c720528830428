"""Foreground location source replaying a recorded GPX file.

Fixes are emitted from a worker thread at a fixed pace, like a foreground
watcher delivering positions while the app is open. Used on machines without
a GPS daemon and for rehearsing recordings against known tracks.
"""

from __future__ import annotations

import logging
import threading
import uuid
from pathlib import Path
from typing import Dict, List

import gpxpy
import gpxpy.gpx

from ..config import (
    GPX_HDOP_TO_METERS,
    GPX_REPLAY_FILE,
    GPX_REPLAY_INTERVAL_S,
    UNKNOWN_ACCURACY_M,
)
from ..errors import LocationPermissionError, LocationUnavailableError
from ..utils import datetime_to_ms, now_ms
from .base import LocationCallback, WatchHandle
from .gpsd import Fix

LOGGER = logging.getLogger(__name__)

_JOIN_TIMEOUT_S = 5.0


def load_gpx_fixes(path: str | Path) -> List[Fix]:
    """Read every track point of a GPX file as a fix tuple."""

    gpx_path = Path(path)
    try:
        with gpx_path.open("r", encoding="utf-8") as handle:
            gpx = gpxpy.parse(handle)
    except PermissionError as exc:
        raise LocationPermissionError(f"Cannot read GPX file {gpx_path}") from exc
    except FileNotFoundError as exc:
        raise LocationUnavailableError(f"GPX file not found: {gpx_path}") from exc
    except (OSError, gpxpy.gpx.GPXException) as exc:
        raise LocationUnavailableError(f"Invalid GPX file {gpx_path}: {exc}") from exc

    fixes: List[Fix] = []
    for track in gpx.tracks:
        for segment in track.segments:
            for point in segment.points:
                accuracy = (
                    point.horizontal_dilution * GPX_HDOP_TO_METERS
                    if point.horizontal_dilution is not None
                    else UNKNOWN_ACCURACY_M
                )
                fixes.append(
                    (
                        point.latitude,
                        point.longitude,
                        point.elevation if point.elevation is not None else 0.0,
                        accuracy,
                        point.speed,
                        datetime_to_ms(point.time) if point.time else now_ms(),
                    )
                )
    return fixes


class GpxReplayLocationSource:
    """Replays the points of a GPX file through the location callback."""

    name = "gpx"

    def __init__(
        self,
        path: str | Path = GPX_REPLAY_FILE,
        *,
        interval_s: float = GPX_REPLAY_INTERVAL_S,
    ) -> None:
        self._path = Path(path) if path else None
        self._interval_s = max(0.0, interval_s)
        self._watches: Dict[str, tuple[threading.Thread, threading.Event]] = {}
        self._lock = threading.Lock()
        self._finished = threading.Event()

    @property
    def finished(self) -> threading.Event:
        """Set once a replay has emitted its last point."""

        return self._finished

    def is_available(self) -> bool:
        return self._path is not None and self._path.is_file()

    def start_watching(self, callback: LocationCallback) -> WatchHandle:
        if self._path is None:
            raise LocationUnavailableError("No GPX replay file configured")
        fixes = load_gpx_fixes(self._path)
        watch_id = uuid.uuid4().hex
        stop_event = threading.Event()
        self._finished.clear()
        thread = threading.Thread(
            target=self._replay,
            args=(fixes, callback, stop_event),
            name=f"gpx-replay-{watch_id[:8]}",
            daemon=True,
        )
        with self._lock:
            self._watches[watch_id] = (thread, stop_event)
        thread.start()
        LOGGER.info(
            "Replaying %d GPX points from %s (interval %.2fs)",
            len(fixes),
            self._path,
            self._interval_s,
        )
        return WatchHandle(watch_id=watch_id, source=self.name)

    def stop_watching(self, handle: WatchHandle) -> None:
        with self._lock:
            watch = self._watches.pop(handle.watch_id, None)
        if watch is None:
            return
        thread, stop_event = watch
        stop_event.set()
        if thread is not threading.current_thread():
            thread.join(timeout=_JOIN_TIMEOUT_S)

    def _replay(
        self,
        fixes: List[Fix],
        callback: LocationCallback,
        stop_event: threading.Event,
    ) -> None:
        for index, fix in enumerate(fixes):
            if index and self._interval_s and stop_event.wait(self._interval_s):
                return
            if stop_event.is_set():
                return
            try:
                callback(*fix)
            except Exception as exc:  # pragma: no cover - defensive logging
                LOGGER.error("Location callback failed: %s", exc, exc_info=True)
        self._finished.set()


__all__ = ["GpxReplayLocationSource", "load_gpx_fixes"]
