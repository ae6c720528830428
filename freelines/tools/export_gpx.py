#!/usr/bin/env python3
"""Export locally held tracks as GPX files.

Writes the interrupted session checkpoint (if any) and every track waiting in
the offline queue, so a descent can be inspected in any mapping app or
replayed later with ``freelines record --gpx``.

Usage examples:

    python -m freelines.tools.export_gpx --output-dir exported

    python -m freelines.tools.export_gpx --storage-dir ~/.freelines --queue-only
"""

from __future__ import annotations

import argparse
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List

import gpxpy.gpx

from freelines.config import GPX_HDOP_TO_METERS, STORAGE_DIR
from freelines.models import LocationSample
from freelines.storage import JsonFileStore, SessionStore

LOGGER = logging.getLogger("export_gpx")

CREATOR = "freelines"


def samples_to_gpx(samples: Iterable[LocationSample], name: str) -> gpxpy.gpx.GPX:
    """Build a single-track GPX document from recorded samples."""

    gpx = gpxpy.gpx.GPX()
    gpx.creator = CREATOR
    gpx.name = name
    track = gpxpy.gpx.GPXTrack(name=name)
    gpx.tracks.append(track)
    segment = gpxpy.gpx.GPXTrackSegment()
    track.segments.append(segment)
    for sample in samples:
        point = gpxpy.gpx.GPXTrackPoint(
            latitude=sample.latitude,
            longitude=sample.longitude,
            elevation=sample.elevation,
            time=datetime.fromtimestamp(sample.timestamp_ms / 1000.0, tz=timezone.utc),
            speed=sample.speed,
        )
        # Inverse of the hdop conversion used when replaying GPX files.
        point.horizontal_dilution = round(sample.accuracy / GPX_HDOP_TO_METERS, 2)
        segment.points.append(point)
    return gpx


def _write(gpx: gpxpy.gpx.GPX, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as handle:
        handle.write(gpx.to_xml())
    LOGGER.info("Wrote %d points to %s", gpx.get_track_points_no(), path)
    return path


def export_pending(
    store: SessionStore, output_dir: Path, *, include_session: bool = True
) -> List[Path]:
    """Write the checkpoint and queued tracks under ``output_dir``."""

    written: List[Path] = []
    if include_session:
        session = store.load_session()
        if session is not None and session.samples:
            gpx = samples_to_gpx(session.samples, f"Interrupted {session.session_id}")
            written.append(_write(gpx, output_dir / f"session_{session.session_id}.gpx"))
    for item in store.load_queue():
        gpx = samples_to_gpx(item.payload.samples, f"Queued {item.queue_id}")
        written.append(_write(gpx, output_dir / f"queued_{item.queue_id}.gpx"))
    return written


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Export the interrupted session and queued tracks as GPX"
    )
    parser.add_argument(
        "--storage-dir",
        default=STORAGE_DIR,
        help="Directory holding the session checkpoint and offline queue",
    )
    parser.add_argument(
        "--output-dir",
        default="gpx_export",
        help="Directory receiving the GPX files",
    )
    parser.add_argument(
        "--queue-only",
        action="store_true",
        help="Skip the interrupted session checkpoint",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Python logging level",
    )
    return parser


def main() -> None:
    """Entry point for the export_gpx tool."""
    args = _build_parser().parse_args()
    logging.basicConfig(level=getattr(logging, args.log_level))

    store = SessionStore(JsonFileStore(args.storage_dir))
    written = export_pending(
        store, Path(args.output_dir), include_session=not args.queue_only
    )
    if not written:
        LOGGER.info("Nothing to export")


if __name__ == "__main__":
    main()
