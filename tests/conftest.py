"""Global pytest fixtures & helpers.

Adds project root to path and provides reusable fakes (location source,
submission client, clock) and sample factories shared by the recorder,
storage and matching tests.
"""
from __future__ import annotations

import os
import sys
import threading
from typing import Any, Callable, List, Optional

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from freelines.api_client import SubmissionResponse
from freelines.errors import FreelinesError
from freelines.location.base import WatchHandle
from freelines.models import FinishedTrackPayload, Line, LocationSample
from freelines.storage import MemoryStore, SessionStore

# ~11.1 m of latitude.
LAT_STEP = 1.0e-4
BASE_LAT = 45.878472
BASE_LON = 6.887247
BASE_TS = 1_700_000_000_000


# --- Factory helpers -------------------------------------------------
def make_fix(index: int, *, accuracy: float = 5.0, speed: Optional[float] = 10.0):
    """Fix ``index`` of a straight descent: 11 m north and 2 m lower per step."""

    return (
        BASE_LAT + index * LAT_STEP,
        BASE_LON,
        3000.0 - index * 2.0,
        accuracy,
        speed,
        BASE_TS + index * 1000,
    )


def make_sample(index: int, **overrides: Any) -> LocationSample:
    lat, lon, elev, acc, speed, ts = make_fix(index)
    values = dict(
        latitude=lat,
        longitude=lon,
        elevation=elev,
        accuracy=acc,
        speed=speed,
        timestamp_ms=ts,
    )
    values.update(overrides)
    return LocationSample(**values)


def make_payload(sample_count: int = 12, **overrides: Any) -> FinishedTrackPayload:
    samples = tuple(make_sample(i) for i in range(sample_count))
    first, last = samples[0], samples[-1]
    values = dict(
        samples=samples,
        started_at="2023-11-14T22:13:20+00:00",
        ended_at="2023-11-14T22:13:31+00:00",
        duration_seconds=sample_count - 1,
        distance_meters=round(11.1 * (sample_count - 1)),
        vertical_drop_meters=round(first.elevation - last.elevation),
        max_speed_kmh=36.0,
        avg_speed_kmh=36.0,
        start_latitude=first.latitude,
        start_longitude=first.longitude,
        start_elevation=first.elevation,
        end_latitude=last.latitude,
        end_longitude=last.longitude,
        end_elevation=last.elevation,
    )
    values.update(overrides)
    return FinishedTrackPayload(**values)


def make_line(line_id: str = "line", **overrides: Any) -> Line:
    values = dict(
        id=line_id,
        name=line_id.replace("-", " ").title(),
        country="FR",
        start_latitude=BASE_LAT,
        start_longitude=BASE_LON,
        start_elevation=3000.0,
        end_latitude=BASE_LAT + 0.01,
        end_longitude=BASE_LON,
        end_elevation=2000.0,
        vertical_drop=1000.0,
        distance=1200.0,
    )
    values.update(overrides)
    return Line(**values)


# --- Fakes -----------------------------------------------------------
class FakeLocationSource:
    """Location source driven by the test through ``emit``."""

    name = "fake"

    def __init__(self, error: Optional[Exception] = None) -> None:
        self.error = error
        self.callback: Optional[Callable[..., None]] = None
        self.started = 0
        self.stopped: List[WatchHandle] = []

    def start_watching(self, callback):
        self.started += 1
        if self.error is not None:
            raise self.error
        self.callback = callback
        return WatchHandle(watch_id=f"watch-{self.started}", source=self.name)

    def stop_watching(self, handle: WatchHandle) -> None:
        self.stopped.append(handle)
        self.callback = None

    def emit(self, *fix) -> None:
        if self.callback is not None:
            self.callback(*fix)


class FakeClient:
    """Submission client replaying scripted outcomes.

    Each entry of ``outcomes`` is either an exception to raise or ``None`` for
    success; when exhausted every call succeeds.
    """

    def __init__(self, outcomes: Optional[List[Optional[Exception]]] = None) -> None:
        self.outcomes = list(outcomes or [])
        self.submitted: List[FinishedTrackPayload] = []

    def submit_track(self, payload: FinishedTrackPayload) -> SubmissionResponse:
        self.submitted.append(payload)
        outcome = self.outcomes.pop(0) if self.outcomes else None
        if isinstance(outcome, FreelinesError):
            raise outcome
        return SubmissionResponse(
            track={"id": f"track-{len(self.submitted)}"}, match=None
        )


class ManualClock:
    def __init__(self, start: int = BASE_TS) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class RecordingStore(MemoryStore):
    """MemoryStore that signals every write, for waiting on background checkpoints."""

    def __init__(self) -> None:
        super().__init__()
        self.writes: List[str] = []
        self.written = threading.Event()

    def put(self, key: str, value: Any) -> None:
        super().put(key, value)
        self.writes.append(key)
        self.written.set()


# --- Fixtures --------------------------------------------------------
@pytest.fixture
def location_source() -> FakeLocationSource:
    return FakeLocationSource()


@pytest.fixture
def fake_client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def memory_store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture
def session_store(memory_store: RecordingStore) -> SessionStore:
    return SessionStore(memory_store)
