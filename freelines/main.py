"""Command line entry point.

Sub-commands:

    record   record a descent from gpsd or a GPX replay, then submit it
    resume   submit (or discard) a session interrupted by a crash
    sync     resubmit tracks queued while offline
    status   show the interrupted session and queue size
    serve    run the track service with an in-memory catalog
"""

from __future__ import annotations

import argparse
import logging
import threading
from typing import List, Optional, Sequence

from . import config
from .api_client import TrackSubmissionClient
from .catalog import InMemoryLineCatalog, InMemoryTrackRepository, load_lines
from .errors import (
    FreelinesError,
    InsufficientSamplesError,
    LocationPermissionError,
    LocationUnavailableError,
    ServerRejectedError,
)
from .location import select_location_source
from .models import LocationSample, SubmitResult
from .recorder import TrackRecorder
from .storage import JsonFileStore, SessionStore
from .utils import format_duration

LOGGER = logging.getLogger("freelines")

_PROGRESS_EVERY = 10
_POLL_INTERVAL_S = 0.5


def _setup_logging(level: str = "INFO") -> None:
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(
            level=getattr(logging, level),
            format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        )


def _build_store(storage_dir: str) -> SessionStore:
    return SessionStore(JsonFileStore(storage_dir))


def _build_recorder(args: argparse.Namespace) -> TrackRecorder:
    return TrackRecorder(
        _NoLocationSource(),
        _build_store(args.storage_dir),
        TrackSubmissionClient(args.api_url),
    )


class _NoLocationSource:
    """Placeholder for commands that never subscribe to location updates."""

    name = "none"

    def start_watching(self, callback):
        raise LocationUnavailableError("This command does not record")

    def stop_watching(self, handle) -> None:
        return None


def _log_submit_result(result: SubmitResult) -> None:
    if result.queued:
        LOGGER.info("Track saved offline as %s; run 'sync' when online", result.queue_id)
        return
    track_id = (result.track or {}).get("id")
    if result.match is not None:
        LOGGER.info(
            "Track %s submitted and matched %s (confidence %.0f%%)",
            track_id,
            result.match.line_name,
            result.match.confidence * 100,
        )
    else:
        LOGGER.info("Track %s submitted; no catalogued line matched", track_id)


def _submit(recorder: TrackRecorder) -> int:
    try:
        result = recorder.submit()
    except InsufficientSamplesError as exc:
        LOGGER.warning("%s; nothing submitted", exc)
        return 1
    except ServerRejectedError as exc:
        LOGGER.error("Track refused by the service: %s", exc)
        return 1
    _log_submit_result(result)
    return 0


def _cmd_record(args: argparse.Namespace) -> int:
    store = _build_store(args.storage_dir)
    interrupted = store.load_session()
    if interrupted is not None:
        LOGGER.warning(
            "An interrupted session (%s, %d samples) is pending; "
            "run 'resume' to submit or discard it",
            interrupted.session_id,
            len(interrupted.samples),
        )
        return 1

    try:
        source = select_location_source(
            args.source, gpx_file=args.gpx, interval_s=args.interval
        )
    except (LocationUnavailableError, ValueError) as exc:
        LOGGER.error("No location source: %s", exc)
        return 1
    recorder = TrackRecorder(source, store, TrackSubmissionClient(args.api_url))

    def _progress(sample: LocationSample) -> None:
        count = len(recorder.samples)
        if count == 1 or count % _PROGRESS_EVERY == 0:
            stats = recorder.stats()
            LOGGER.info(
                "%s elapsed, %d points, %.0f m, drop %.0f m, %.1f km/h",
                format_duration(stats.duration_ms // 1000),
                stats.sample_count,
                stats.distance_m,
                stats.vertical_drop_m,
                stats.current_speed_kmh,
            )

    try:
        recorder.start(_progress)
    except (LocationPermissionError, LocationUnavailableError) as exc:
        LOGGER.error("Cannot start tracking: %s", exc)
        return 1

    done = getattr(source, "finished", None) or threading.Event()
    LOGGER.info("Recording; press Ctrl+C to stop")
    try:
        while not done.wait(_POLL_INTERVAL_S):
            pass
    except KeyboardInterrupt:
        LOGGER.info("Stopping")
    session = recorder.stop()
    LOGGER.info(
        "Recorded %d points over %s",
        session.stats.sample_count,
        format_duration(session.stats.duration_ms // 1000),
    )
    if args.no_submit:
        return 0
    return _submit(recorder)


def _cmd_resume(args: argparse.Namespace) -> int:
    recorder = _build_recorder(args)
    restored = recorder.restore_session()
    if restored is None:
        LOGGER.info("No interrupted session found")
        return 0
    if args.discard:
        recorder.reset()
        LOGGER.info("Discarded interrupted session %s", restored.session_id)
        return 0
    return _submit(recorder)


def _cmd_sync(args: argparse.Namespace) -> int:
    recorder = _build_recorder(args)
    pending = recorder.queue_count()
    if not pending:
        LOGGER.info("Offline queue is empty")
        return 0
    result = recorder.drain_queue()
    LOGGER.info(
        "Synced %d of %d queued tracks (%d failed)",
        result.synced,
        pending,
        result.failed,
    )
    return 0 if result.failed == 0 else 1


def _cmd_status(args: argparse.Namespace) -> int:
    store = _build_store(args.storage_dir)
    session = store.load_session()
    if session is None:
        print("Interrupted session: none")
    else:
        print(
            f"Interrupted session: {session.session_id} "
            f"({len(session.samples)} samples, "
            f"{format_duration(session.stats.duration_ms // 1000)})"
        )
    print(f"Queued tracks: {store.queue_count()}")
    return 0


def _cmd_serve(args: argparse.Namespace) -> int:
    from .server import create_app
    from .services import TrackService

    try:
        lines = load_lines(args.lines or None)
    except (OSError, ValueError, KeyError) as exc:
        LOGGER.error("Failed to load line catalog: %s", exc)
        return 1
    catalog = InMemoryLineCatalog(lines)
    service = TrackService(InMemoryTrackRepository(), catalog)
    app = create_app(service)
    LOGGER.info("Serving %d lines on %s:%d", len(lines), args.host, args.port)
    app.run(host=args.host, port=args.port)
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="freelines", description="Record ski descents and match them to lines"
    )
    parser.add_argument(
        "--storage-dir",
        default=config.STORAGE_DIR,
        help="Directory holding the session checkpoint and offline queue",
    )
    parser.add_argument(
        "--api-url",
        default=config.API_BASE_URL,
        help="Base URL of the track service",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Python logging level",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    record = sub.add_parser("record", help="Record a descent")
    record.add_argument(
        "--source",
        choices=["auto", "gpsd", "gpx"],
        default=None,
        help="Location source (default: FREELINES_LOCATION_SOURCE or auto)",
    )
    record.add_argument("--gpx", help="GPX file to replay instead of live GPS")
    record.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds between replayed GPX points",
    )
    record.add_argument(
        "--no-submit",
        action="store_true",
        help="Stop after recording without submitting",
    )
    record.set_defaults(handler=_cmd_record)

    resume = sub.add_parser("resume", help="Submit an interrupted session")
    resume.add_argument(
        "--discard",
        action="store_true",
        help="Drop the interrupted session instead of submitting it",
    )
    resume.set_defaults(handler=_cmd_resume)

    sub.add_parser("sync", help="Submit queued tracks").set_defaults(
        handler=_cmd_sync
    )
    sub.add_parser("status", help="Show pending local data").set_defaults(
        handler=_cmd_status
    )

    serve = sub.add_parser("serve", help="Run the track service")
    serve.add_argument("--host", default=config.SERVER_HOST)
    serve.add_argument("--port", type=int, default=config.SERVER_PORT)
    serve.add_argument(
        "--lines",
        default=config.SEED_LINES_FILE,
        help="JSON line catalog (default: bundled seed lines)",
    )
    serve.set_defaults(handler=_cmd_serve)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_parser().parse_args(list(argv) if argv is not None else None)
    _setup_logging(args.log_level)
    try:
        return args.handler(args)
    except FreelinesError as exc:
        LOGGER.error("%s", exc)
        return 1


__all__: List[str] = ["main"]
