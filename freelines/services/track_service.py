"""Track recording service (server-side application layer).

Persists submitted tracks, asks the matcher for the best catalogued line and,
when one is found, links the track to it and bumps the line's usage counter.
Matching is best-effort: a track is never rejected because matching failed.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from ..catalog.base import LineCatalog, TrackRepository
from ..config import MIN_TRACK_SAMPLES
from ..errors import MatchingUnavailableError, ServerRejectedError
from ..matching import LineMatcher
from ..models import FinishedTrackPayload, Line, MatchResult, RecordedTrack


class TrackService:
    def __init__(
        self,
        repository: TrackRepository,
        catalog: LineCatalog,
        matcher: LineMatcher | None = None,
        *,
        min_samples: int = MIN_TRACK_SAMPLES,
    ) -> None:
        self._repository = repository
        self._catalog = catalog
        self._matcher = matcher or LineMatcher(catalog)
        self._min_samples = min_samples
        self._log = logging.getLogger(self.__class__.__name__)

    def record_track(self, user_id: str, payload: FinishedTrackPayload) -> RecordedTrack:
        """Store ``payload`` for ``user_id`` and attach the best line match."""

        if len(payload.samples) < self._min_samples:
            raise ServerRejectedError(
                f"At least {self._min_samples} GPS points required", status_code=400
            )

        record = self._repository.save_track(user_id, payload)
        self._log.info(
            "Stored track id=%s user=%s samples=%d drop=%dm",
            record.id,
            user_id,
            len(payload.samples),
            payload.vertical_drop_meters,
        )

        match = self._find_match(payload)
        if match is None:
            return RecordedTrack(track=record)

        try:
            record = self._repository.attach_match(record.id, match)
        except Exception as exc:  # pragma: no cover - defensive logging
            self._log.error(
                "Failed to link track %s to line %s: %s",
                record.id,
                match.line_id,
                exc,
                exc_info=True,
            )
            return RecordedTrack(track=record)

        # The link is already stored, so the match is reported either way.
        try:
            self._catalog.increment_usage(match.line_id)
        except Exception as exc:
            self._log.error(
                "Failed to count run on line %s for track %s: %s",
                match.line_id,
                record.id,
                exc,
            )

        self._log.info(
            "Track %s matched line %s (confidence=%.2f deviation=%dm)",
            record.id,
            match.line_name,
            match.confidence,
            match.average_deviation_m,
        )
        return RecordedTrack(track=record, match=match)

    def _find_match(self, payload: FinishedTrackPayload) -> Optional[MatchResult]:
        try:
            return self._matcher.match_payload(payload)
        except MatchingUnavailableError as exc:
            self._log.warning("Line matching skipped: %s", exc)
            return None

    def list_lines(self) -> List[Line]:
        return self._catalog.list_approved_lines()


__all__ = ["TrackService"]
