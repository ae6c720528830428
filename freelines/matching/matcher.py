"""Find the catalogued line that best matches a recorded track."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from threading import RLock
from typing import List, Optional, Tuple

import numpy as np
from cachetools import TTLCache

from ..catalog.base import LineCatalog
from ..config import (
    CATALOG_CACHE_TTL_SECONDS,
    MATCH_CANDIDATE_RADIUS_M,
    MATCH_THRESHOLD,
)
from ..errors import MatchingUnavailableError
from ..geo import haversine_many
from ..models import Coordinate, FinishedTrackPayload, Line, MatchResult
from .scoring import LineScore, ScoreWeights, score_line

LOGGER = logging.getLogger(__name__)

_CATALOG_CACHE_KEY = "approved"


@dataclass(frozen=True, slots=True)
class Candidate:
    line: Line
    start_distance_m: float
    end_distance_m: float


class LineMatcher:
    """Scores a track's endpoints and vertical drop against approved lines.

    The matcher holds no per-call state; the only shared structure is the
    short-lived catalog cache, which is guarded by a lock.
    """

    def __init__(
        self,
        catalog: LineCatalog,
        *,
        threshold: float = MATCH_THRESHOLD,
        candidate_radius_m: float = MATCH_CANDIDATE_RADIUS_M,
        weights: ScoreWeights = ScoreWeights(),
        cache_ttl_s: float = CATALOG_CACHE_TTL_SECONDS,
    ) -> None:
        self._catalog = catalog
        self._threshold = threshold
        self._candidate_radius_m = candidate_radius_m
        self._weights = weights
        self._cache: Optional[TTLCache[str, Tuple[Line, ...]]] = (
            TTLCache(maxsize=1, ttl=cache_ttl_s) if cache_ttl_s > 0 else None
        )
        self._cache_lock = RLock()

    def invalidate(self) -> None:
        """Forget the cached catalog (e.g. after moderation changes)."""

        if self._cache is not None:
            with self._cache_lock:
                self._cache.clear()

    def _approved_lines(self) -> Tuple[Line, ...]:
        if self._cache is not None:
            with self._cache_lock:
                cached = self._cache.get(_CATALOG_CACHE_KEY)
            if cached is not None:
                return cached
        try:
            lines = tuple(self._catalog.list_approved_lines())
        except Exception as exc:
            raise MatchingUnavailableError(f"Line catalog unavailable: {exc}") from exc
        if self._cache is not None:
            with self._cache_lock:
                self._cache[_CATALOG_CACHE_KEY] = lines
        return lines

    def candidates(
        self, start: Coordinate, end: Coordinate, lines: Tuple[Line, ...]
    ) -> List[Candidate]:
        """Lines whose start and end both lie within the candidate radius.

        Catalog order is preserved.
        """

        if not lines:
            return []
        start_dists = haversine_many(
            start.latitude,
            start.longitude,
            [line.start_latitude for line in lines],
            [line.start_longitude for line in lines],
        )
        end_dists = haversine_many(
            end.latitude,
            end.longitude,
            [line.end_latitude for line in lines],
            [line.end_longitude for line in lines],
        )
        keep = (start_dists <= self._candidate_radius_m) & (
            end_dists <= self._candidate_radius_m
        )
        return [
            Candidate(lines[idx], float(start_dists[idx]), float(end_dists[idx]))
            for idx in np.flatnonzero(keep)
        ]

    def rank(
        self, start: Coordinate, end: Coordinate, vertical_drop: float
    ) -> List[Tuple[Line, LineScore]]:
        """Score every candidate, in catalog order."""

        lines = self._approved_lines()
        return [
            (
                candidate.line,
                score_line(
                    candidate.start_distance_m,
                    candidate.end_distance_m,
                    vertical_drop,
                    candidate.line.vertical_drop,
                    self._weights,
                ),
            )
            for candidate in self.candidates(start, end, lines)
        ]

    def match(
        self, start: Coordinate, end: Coordinate, vertical_drop: float
    ) -> Optional[MatchResult]:
        """Return the best line at or above the confidence threshold, if any.

        Raises ``MatchingUnavailableError`` when the catalog cannot be read.
        """

        best: Optional[Tuple[Line, LineScore]] = None
        best_total = 0.0
        for line, score in self.rank(start, end, vertical_drop):
            # Strictly greater: the first of equal scores wins.
            if score.total > best_total:
                best = (line, score)
                best_total = score.total

        if best is None:
            LOGGER.debug("No candidate lines near track start/end")
            return None
        line, score = best
        confidence = round(score.total, 2)
        if confidence < self._threshold:
            LOGGER.debug(
                "Best line %s scored %.2f below threshold %.2f",
                line.name,
                confidence,
                self._threshold,
            )
            return None
        return MatchResult(
            line_id=line.id,
            line_name=line.name,
            confidence=confidence,
            average_deviation_m=score.average_deviation_m,
        )

    def match_payload(self, payload: FinishedTrackPayload) -> Optional[MatchResult]:
        return self.match(payload.start, payload.end, payload.vertical_drop_meters)


__all__ = ["Candidate", "LineMatcher"]
