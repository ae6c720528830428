"""Background-capable location source backed by a gpsd daemon.

gpsd speaks newline-delimited JSON over TCP. After a ``?WATCH`` command the
daemon streams ``TPV`` (time-position-velocity) reports, which a reader
thread converts into callback invocations. The watcher keeps running while
the rest of the process is busy, which is what makes it the native source.
"""

from __future__ import annotations

import json
import logging
import socket
import threading
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

from ..config import (
    GPSD_CONNECT_TIMEOUT,
    GPSD_HOST,
    GPSD_PORT,
    UNKNOWN_ACCURACY_M,
)
from ..errors import LocationPermissionError, LocationUnavailableError
from ..utils import iso_to_ms, now_ms
from .base import LocationCallback, WatchHandle

LOGGER = logging.getLogger(__name__)

_WATCH_COMMAND = b'?WATCH={"enable":true,"json":true};\n'
_UNWATCH_COMMAND = b'?WATCH={"enable":false};\n'
_JOIN_TIMEOUT_S = 5.0

Fix = Tuple[float, float, float, float, Optional[float], int]


def parse_tpv(report: Mapping[str, Any]) -> Optional[Fix]:
    """Convert a gpsd TPV report into a fix tuple, or None when it has no 2D fix."""

    if report.get("class") != "TPV":
        return None
    if int(report.get("mode") or 0) < 2:
        return None
    lat = report.get("lat")
    lon = report.get("lon")
    if lat is None or lon is None:
        return None

    elevation = report.get("altMSL", report.get("alt", report.get("altHAE")))
    accuracy = report.get("eph")
    if accuracy is None:
        epx = report.get("epx")
        epy = report.get("epy")
        if epx is not None and epy is not None:
            accuracy = max(float(epx), float(epy))
    speed = report.get("speed")
    raw_time = report.get("time")
    try:
        timestamp = iso_to_ms(raw_time) if isinstance(raw_time, str) else now_ms()
    except ValueError:
        LOGGER.debug("Unparseable gpsd time %r; using wall clock", raw_time)
        timestamp = now_ms()

    return (
        float(lat),
        float(lon),
        float(elevation) if elevation is not None else 0.0,
        float(accuracy) if accuracy is not None else UNKNOWN_ACCURACY_M,
        float(speed) if speed is not None else None,
        timestamp,
    )


@dataclass(slots=True)
class _Watch:
    sock: socket.socket
    thread: threading.Thread
    stop_event: threading.Event


class GpsdLocationSource:
    """Streams fixes from gpsd on a daemon reader thread."""

    name = "gpsd"

    def __init__(
        self,
        host: str = GPSD_HOST,
        port: int = GPSD_PORT,
        *,
        connect_timeout: float = GPSD_CONNECT_TIMEOUT,
    ) -> None:
        self._host = host
        self._port = port
        self._connect_timeout = connect_timeout
        self._watches: Dict[str, _Watch] = {}
        self._lock = threading.Lock()

    def is_available(self) -> bool:
        """Return True when a gpsd daemon accepts connections."""

        try:
            with socket.create_connection(
                (self._host, self._port), timeout=self._connect_timeout
            ):
                return True
        except OSError:
            return False

    def start_watching(self, callback: LocationCallback) -> WatchHandle:
        try:
            sock = socket.create_connection(
                (self._host, self._port), timeout=self._connect_timeout
            )
        except PermissionError as exc:
            raise LocationPermissionError(
                f"Access to gpsd at {self._host}:{self._port} denied"
            ) from exc
        except OSError as exc:
            raise LocationUnavailableError(
                f"gpsd not reachable at {self._host}:{self._port}: {exc}"
            ) from exc

        # The fix stream itself has no timeout; idle periods are normal.
        sock.settimeout(None)
        try:
            sock.sendall(_WATCH_COMMAND)
        except OSError as exc:
            sock.close()
            raise LocationUnavailableError(f"gpsd refused WATCH: {exc}") from exc

        watch_id = uuid.uuid4().hex
        stop_event = threading.Event()
        thread = threading.Thread(
            target=self._read_loop,
            args=(sock, callback, stop_event),
            name=f"gpsd-watch-{watch_id[:8]}",
            daemon=True,
        )
        with self._lock:
            self._watches[watch_id] = _Watch(sock, thread, stop_event)
        thread.start()
        LOGGER.info("Watching gpsd at %s:%s (watch=%s)", self._host, self._port, watch_id)
        return WatchHandle(watch_id=watch_id, source=self.name)

    def stop_watching(self, handle: WatchHandle) -> None:
        with self._lock:
            watch = self._watches.pop(handle.watch_id, None)
        if watch is None:
            return
        watch.stop_event.set()
        try:
            watch.sock.sendall(_UNWATCH_COMMAND)
        except OSError:
            pass
        try:
            watch.sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        watch.sock.close()
        if watch.thread is not threading.current_thread():
            watch.thread.join(timeout=_JOIN_TIMEOUT_S)
        LOGGER.info("Stopped gpsd watch %s", handle.watch_id)

    def _read_loop(
        self,
        sock: socket.socket,
        callback: LocationCallback,
        stop_event: threading.Event,
    ) -> None:
        try:
            with sock.makefile("r", encoding="utf-8", errors="replace") as stream:
                for line in stream:
                    if stop_event.is_set():
                        return
                    self._dispatch(line, callback, stop_event)
        except (OSError, ValueError) as exc:
            if not stop_event.is_set():
                LOGGER.warning("gpsd stream ended unexpectedly: %s", exc)

    def _dispatch(
        self, line: str, callback: LocationCallback, stop_event: threading.Event
    ) -> None:
        try:
            report = json.loads(line)
        except ValueError:
            LOGGER.debug("Skipping non-JSON gpsd line: %r", line[:80])
            return
        if not isinstance(report, dict):
            return
        fix = parse_tpv(report)
        if fix is None or stop_event.is_set():
            return
        try:
            callback(*fix)
        except Exception as exc:  # pragma: no cover - defensive logging
            LOGGER.error("Location callback failed: %s", exc, exc_info=True)


__all__ = ["GpsdLocationSource", "parse_tpv"]
