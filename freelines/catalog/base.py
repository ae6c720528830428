"""Interfaces of the storage collaborator holding lines and tracks."""

from __future__ import annotations

from typing import List, Optional, Protocol

from ..models import FinishedTrackPayload, Line, MatchResult, TrackRecord


class LineCatalog(Protocol):
    def list_approved_lines(self) -> List[Line]: ...

    def get_line(self, line_id: str) -> Optional[Line]: ...

    def increment_usage(self, line_id: str) -> None:
        """Atomically add one to the line's run count and refresh ``updated_at``."""


class TrackRepository(Protocol):
    def save_track(self, user_id: str, payload: FinishedTrackPayload) -> TrackRecord: ...

    def attach_match(self, track_id: str, match: MatchResult) -> TrackRecord: ...

    def list_tracks(self, user_id: str) -> List[TrackRecord]: ...


__all__ = ["LineCatalog", "TrackRepository"]
