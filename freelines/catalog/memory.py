"""Thread-safe in-memory line catalog and track repository."""

from __future__ import annotations

import copy
import json
import logging
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from ..models import FinishedTrackPayload, Line, MatchResult, TrackRecord

LOGGER = logging.getLogger(__name__)

_SEED_FILE = Path(__file__).resolve().parent.parent / "data" / "seed_lines.json"


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def load_lines(path: str | Path | None = None) -> List[Line]:
    """Read a JSON catalog (``{"lines": [...]}`` or a bare list)."""

    source = Path(path) if path else _SEED_FILE
    with source.open("r", encoding="utf-8") as handle:
        data = json.load(handle)
    raw_lines = data.get("lines", []) if isinstance(data, dict) else data
    lines = [Line.from_dict(item) for item in raw_lines]
    LOGGER.info("Loaded %d lines from %s", len(lines), source)
    return lines


class InMemoryLineCatalog:
    """Line catalog held in a dict, preserving insertion order."""

    def __init__(self, lines: Iterable[Line] = ()) -> None:
        self._lock = threading.Lock()
        self._lines: Dict[str, Line] = {}
        for line in lines:
            self._lines[line.id] = copy.copy(line)

    def add_line(self, line: Line) -> None:
        with self._lock:
            self._lines[line.id] = copy.copy(line)

    def list_approved_lines(self) -> List[Line]:
        with self._lock:
            return [
                copy.copy(line)
                for line in self._lines.values()
                if line.status == "approved"
            ]

    def get_line(self, line_id: str) -> Optional[Line]:
        with self._lock:
            line = self._lines.get(line_id)
            return copy.copy(line) if line is not None else None

    def increment_usage(self, line_id: str) -> None:
        with self._lock:
            line = self._lines.get(line_id)
            if line is None:
                raise KeyError(line_id)
            line.run_count += 1
            line.updated_at = _utcnow_iso()


class InMemoryTrackRepository:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tracks: Dict[str, TrackRecord] = {}

    def save_track(self, user_id: str, payload: FinishedTrackPayload) -> TrackRecord:
        record = TrackRecord(
            id=uuid.uuid4().hex,
            user_id=user_id,
            payload=payload,
            recorded_at=_utcnow_iso(),
        )
        with self._lock:
            self._tracks[record.id] = record
        return copy.copy(record)

    def attach_match(self, track_id: str, match: MatchResult) -> TrackRecord:
        with self._lock:
            record = self._tracks[track_id]
            record.line_id = match.line_id
            record.match_confidence = match.confidence
            record.average_deviation_m = match.average_deviation_m
            return copy.copy(record)

    def list_tracks(self, user_id: str) -> List[TrackRecord]:
        with self._lock:
            tracks = [copy.copy(t) for t in self._tracks.values() if t.user_id == user_id]
        return sorted(tracks, key=lambda t: t.recorded_at, reverse=True)


__all__ = ["InMemoryLineCatalog", "InMemoryTrackRepository", "load_lines"]
