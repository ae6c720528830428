"""Track recording state machine.

``TrackRecorder`` owns the live sample buffer for one descent. Fixes arrive
from a location source, are filtered for accuracy and jitter, rounded, and
buffered; every few accepted samples a checkpoint is written in the
background so an abrupt process exit loses at most a handful of points.
When recording stops the buffer becomes a ``FinishedTrackPayload`` which is
either submitted live or parked in the offline queue.

Fixes are delivered one at a time from the source's callback thread, and
``stop`` unsubscribes the source before touching state, so the buffer has a
single writer and needs no lock.
"""

from __future__ import annotations

import enum
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol

from ..config import (
    ACCURACY_DECIMALS,
    CHECKPOINT_EVERY_N_SAMPLES,
    COORDINATE_DECIMALS,
    ELEVATION_DECIMALS,
    MIN_ACCURACY_M,
    MIN_DISTANCE_M,
    MIN_SUBMISSION_SAMPLES,
)
from ..errors import (
    FreelinesError,
    InsufficientSamplesError,
    LocationPermissionError,
    LocationUnavailableError,
    NetworkUnavailableError,
)
from ..geo import compute_stats, haversine_distance, ms_to_kmh
from ..location.base import LocationSource, WatchHandle
from ..models import (
    FinishedTrackPayload,
    LocationSample,
    QueuedSubmission,
    SubmitResult,
    SyncResult,
    TrackingSession,
    TrackingStats,
)
from ..storage.session_store import SessionStore
from ..utils import ms_to_iso, now_ms
from .session_ids import SessionIdGenerator, default_session_id_generator

LOGGER = logging.getLogger(__name__)

SampleObserver = Callable[[LocationSample], None]


class SubmissionClient(Protocol):
    def submit_track(self, payload: FinishedTrackPayload): ...


class RecorderState(enum.Enum):
    IDLE = "idle"
    TRACKING = "tracking"


@dataclass(slots=True)
class RecorderConfig:
    min_accuracy_m: float = MIN_ACCURACY_M
    min_distance_m: float = MIN_DISTANCE_M
    checkpoint_every: int = CHECKPOINT_EVERY_N_SAMPLES
    min_submission_samples: int = MIN_SUBMISSION_SAMPLES


def round_sample(
    latitude: float,
    longitude: float,
    elevation: float,
    accuracy: float,
    speed: Optional[float],
    timestamp_ms: int,
) -> LocationSample:
    """Build a sample rounded to storage precision."""

    return LocationSample(
        latitude=round(latitude, COORDINATE_DECIMALS),
        longitude=round(longitude, COORDINATE_DECIMALS),
        elevation=round(elevation, ELEVATION_DECIMALS),
        accuracy=round(accuracy, ACCURACY_DECIMALS),
        speed=speed,
        timestamp_ms=int(timestamp_ms),
    )


class TrackRecorder:
    """Records one track at a time from an injected location source."""

    def __init__(
        self,
        source: LocationSource,
        store: SessionStore,
        client: SubmissionClient,
        *,
        config: RecorderConfig | None = None,
        session_ids: SessionIdGenerator | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._source = source
        self._store = store
        self._client = client
        self._config = config or RecorderConfig()
        self._session_ids = session_ids or default_session_id_generator()
        self._clock = clock

        self._state = RecorderState.IDLE
        self._session_id = ""
        self._started_at_ms = 0
        self._samples: List[LocationSample] = []
        self._unsaved_count = 0
        self._observer: Optional[SampleObserver] = None
        self._watch: Optional[WatchHandle] = None
        self._checkpoint_pool: Optional[ThreadPoolExecutor] = None
        self._drain_lock = threading.Lock()

    # --- Read-only views ------------------------------------------------
    @property
    def state(self) -> RecorderState:
        return self._state

    @property
    def is_tracking(self) -> bool:
        return self._state is RecorderState.TRACKING

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def started_at_ms(self) -> int:
        return self._started_at_ms

    @property
    def samples(self) -> tuple[LocationSample, ...]:
        return tuple(self._samples)

    def stats(self) -> TrackingStats:
        """Statistics recomputed from the buffer and the current wall clock."""

        return compute_stats(self._samples, self._started_at_ms, self._clock())

    def snapshot(self) -> TrackingSession:
        samples = list(self._samples)
        return TrackingSession(
            session_id=self._session_id,
            started_at_ms=self._started_at_ms,
            samples=samples,
            stats=compute_stats(samples, self._started_at_ms, self._clock()),
        )

    # --- Lifecycle ------------------------------------------------------
    def start(self, on_sample: SampleObserver | None = None) -> None:
        """Begin a new session and subscribe to the location source."""

        if self.is_tracking:
            return

        previous = (self._session_id, self._started_at_ms, self._samples)
        self._session_id = self._session_ids()
        self._started_at_ms = self._clock()
        self._samples = []
        self._unsaved_count = 0
        self._observer = on_sample
        self._checkpoint_pool = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="freelines-checkpoint"
        )
        # Fixes may arrive before start_watching returns.
        self._state = RecorderState.TRACKING
        try:
            self._watch = self._source.start_watching(self.handle_fix)
        except (LocationPermissionError, LocationUnavailableError):
            self._state = RecorderState.IDLE
            self._observer = None
            self._shutdown_checkpoints()
            self._session_id, self._started_at_ms, self._samples = previous
            raise
        LOGGER.info(
            "Tracking started session=%s source=%s",
            self._session_id,
            getattr(self._source, "name", type(self._source).__name__),
        )

    def stop(self) -> TrackingSession:
        """Stop recording and return the final session snapshot.

        Idempotent: when idle the current snapshot is returned unchanged.
        """

        if not self.is_tracking:
            return self.snapshot()

        watch, self._watch = self._watch, None
        try:
            if watch is not None:
                self._source.stop_watching(watch)
        finally:
            self._state = RecorderState.IDLE
            self._observer = None
            self._shutdown_checkpoints()

        session = self.snapshot()
        self._store.clear_session()
        LOGGER.info(
            "Tracking stopped session=%s samples=%d distance=%.0fm drop=%.0fm",
            session.session_id,
            session.stats.sample_count,
            session.stats.distance_m,
            session.stats.vertical_drop_m,
        )
        return session

    def restore_session(self) -> Optional[TrackingSession]:
        """Rehydrate an interrupted session from its checkpoint.

        Only data is restored; the location source is not resubscribed.
        """

        if self.is_tracking:
            LOGGER.warning("Not restoring a checkpoint while tracking is active")
            return None
        saved = self._store.load_session()
        if saved is None:
            return None
        self._session_id = saved.session_id
        self._started_at_ms = saved.started_at_ms
        self._samples = list(saved.samples)
        self._unsaved_count = 0
        LOGGER.info(
            "Restored session=%s with %d samples", saved.session_id, len(saved.samples)
        )
        return saved

    def reset(self) -> None:
        """Discard the buffer and any checkpoint."""

        if self.is_tracking:
            self.stop()
        self._samples = []
        self._started_at_ms = 0
        self._session_id = ""
        self._unsaved_count = 0
        self._store.clear_session()

    # --- Sample ingestion -----------------------------------------------
    def handle_fix(
        self,
        latitude: float,
        longitude: float,
        elevation: float,
        accuracy: float,
        speed: Optional[float],
        timestamp_ms: int,
    ) -> None:
        """Filter one raw fix and buffer it when accepted."""

        if not self.is_tracking:
            return
        if accuracy > self._config.min_accuracy_m:
            LOGGER.debug("Dropped fix with accuracy %.1fm", accuracy)
            return

        sample = round_sample(
            latitude, longitude, elevation, accuracy, speed, timestamp_ms
        )
        if self._samples:
            moved = haversine_distance(self._samples[-1], sample)
            if moved < self._config.min_distance_m:
                return

        self._samples.append(sample)
        self._unsaved_count += 1
        if self._observer is not None:
            try:
                self._observer(sample)
            except Exception as exc:  # pragma: no cover - defensive logging
                LOGGER.error("Sample observer failed: %s", exc, exc_info=True)

        if self._unsaved_count >= self._config.checkpoint_every:
            self._unsaved_count = 0
            self._schedule_checkpoint(self.snapshot())

    def _schedule_checkpoint(self, session: TrackingSession) -> None:
        pool = self._checkpoint_pool
        if pool is None:
            self._store.save_session(session)
            return
        future = pool.submit(self._store.save_session, session)
        future.add_done_callback(_log_checkpoint_failure)

    def _shutdown_checkpoints(self) -> None:
        pool, self._checkpoint_pool = self._checkpoint_pool, None
        if pool is not None:
            # Pending checkpoints finish first so none lands after a clear.
            pool.shutdown(wait=True)

    # --- Submission -----------------------------------------------------
    def build_submission_payload(self) -> FinishedTrackPayload:
        count = len(self._samples)
        if count < self._config.min_submission_samples:
            raise InsufficientSamplesError(
                f"Not enough GPS points recorded ({count} < "
                f"{self._config.min_submission_samples})"
            )

        samples = tuple(self._samples)
        stats = compute_stats(samples, self._started_at_ms, self._clock())
        first = samples[0]
        last = samples[-1]
        duration_sec = stats.duration_ms / 1000.0
        avg_speed = ms_to_kmh(stats.distance_m / duration_sec) if duration_sec > 0 else 0.0

        return FinishedTrackPayload(
            samples=samples,
            started_at=ms_to_iso(first.timestamp_ms),
            ended_at=ms_to_iso(last.timestamp_ms),
            duration_seconds=round(duration_sec),
            distance_meters=round(stats.distance_m),
            vertical_drop_meters=round(stats.vertical_drop_m),
            max_speed_kmh=round(stats.max_speed_kmh, 1),
            avg_speed_kmh=round(avg_speed, 1),
            start_latitude=first.latitude,
            start_longitude=first.longitude,
            start_elevation=first.elevation,
            end_latitude=last.latitude,
            end_longitude=last.longitude,
            end_elevation=last.elevation,
        )

    def submit(self) -> SubmitResult:
        """Submit the recorded track, queueing it when the service is unreachable.

        ``ServerRejectedError`` and ``InsufficientSamplesError`` propagate.
        """

        payload = self.build_submission_payload()
        try:
            response = self._client.submit_track(payload)
        except NetworkUnavailableError as exc:
            queued = QueuedSubmission(
                queue_id=self._session_ids(),
                queued_at_ms=self._clock(),
                payload=payload,
            )
            self._store.enqueue(queued)
            LOGGER.warning(
                "Submission deferred (%s); queued as %s", exc, queued.queue_id
            )
            self._release_checkpoint()
            return SubmitResult(queued=True, queue_id=queued.queue_id)

        self._release_checkpoint()
        return SubmitResult(track=response.track, match=response.match)

    def _release_checkpoint(self) -> None:
        # A restored session is safe once submitted or queued.
        if not self.is_tracking:
            self._store.clear_session()

    def drain_queue(self) -> SyncResult:
        """Submit every queued track once, in order, one request at a time."""

        with self._drain_lock:
            queue = self._store.load_queue()
            if not queue:
                return SyncResult()

            synced = 0
            failed = 0
            for item in queue:
                try:
                    self._client.submit_track(item.payload)
                except FreelinesError as exc:
                    failed += 1
                    LOGGER.warning(
                        "Queued submission %s not synced: %s", item.queue_id, exc
                    )
                    continue
                self._store.remove_from_queue(item.queue_id)
                synced += 1

        LOGGER.info("Queue drain finished synced=%d failed=%d", synced, failed)
        return SyncResult(synced=synced, failed=failed)

    def queue_count(self) -> int:
        return self._store.queue_count()


def _log_checkpoint_failure(future: Future) -> None:
    exc = future.exception()
    if exc is not None:
        LOGGER.error("Checkpoint write failed: %s", exc, exc_info=exc)


__all__ = [
    "RecorderConfig",
    "RecorderState",
    "SampleObserver",
    "SubmissionClient",
    "TrackRecorder",
    "round_sample",
]
