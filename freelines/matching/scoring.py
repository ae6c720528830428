"""Similarity scores between a recorded track and a catalogued line.

Each component score lies in [0, 1]. The weighted total combines start
proximity, end proximity and vertical-drop similarity; path shape is not
scored.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..config import (
    MATCH_DROP_FULL_RATIO,
    MATCH_DROP_ZERO_RATIO,
    MATCH_END_THRESHOLD_M,
    MATCH_PROXIMITY_DECAY_FACTOR,
    MATCH_START_THRESHOLD_M,
    MATCH_WEIGHT_END,
    MATCH_WEIGHT_START,
    MATCH_WEIGHT_VERTICAL,
)


@dataclass(frozen=True, slots=True)
class ScoreWeights:
    start: float = MATCH_WEIGHT_START
    end: float = MATCH_WEIGHT_END
    vertical: float = MATCH_WEIGHT_VERTICAL


@dataclass(frozen=True, slots=True)
class LineScore:
    """Component and total scores of one candidate line."""

    start_distance_m: float
    end_distance_m: float
    start_score: float
    end_score: float
    vertical_score: float
    total: float

    @property
    def average_deviation_m(self) -> int:
        return round((self.start_distance_m + self.end_distance_m) / 2.0)


def proximity_score(
    distance_m: float,
    threshold_m: float,
    decay_factor: float = MATCH_PROXIMITY_DECAY_FACTOR,
) -> float:
    """1.0 within ``threshold_m``, linear decay to 0.0 at ``decay_factor`` x threshold."""

    if distance_m <= threshold_m:
        return 1.0
    max_dist = threshold_m * decay_factor
    if distance_m >= max_dist:
        return 0.0
    return 1.0 - (distance_m - threshold_m) / (max_dist - threshold_m)


def vertical_drop_score(
    run_drop: float,
    line_drop: float,
    full_ratio: float = MATCH_DROP_FULL_RATIO,
    zero_ratio: float = MATCH_DROP_ZERO_RATIO,
) -> float:
    """1.0 within 10% relative difference, linear decay to 0.0 at 50%."""

    if line_drop == 0:
        return 1.0 if run_drop == 0 else 0.0
    ratio = abs(run_drop - line_drop) / line_drop
    if ratio <= full_ratio:
        return 1.0
    if ratio >= zero_ratio:
        return 0.0
    return 1.0 - (ratio - full_ratio) / (zero_ratio - full_ratio)


def score_line(
    start_distance_m: float,
    end_distance_m: float,
    run_drop: float,
    line_drop: float,
    weights: ScoreWeights = ScoreWeights(),
) -> LineScore:
    start = proximity_score(start_distance_m, MATCH_START_THRESHOLD_M)
    end = proximity_score(end_distance_m, MATCH_END_THRESHOLD_M)
    vertical = vertical_drop_score(run_drop, line_drop)
    total = weights.start * start + weights.end * end + weights.vertical * vertical
    return LineScore(
        start_distance_m=start_distance_m,
        end_distance_m=end_distance_m,
        start_score=start,
        end_score=end,
        vertical_score=vertical,
        total=min(1.0, max(0.0, total)),
    )


__all__ = [
    "LineScore",
    "ScoreWeights",
    "proximity_score",
    "score_line",
    "vertical_drop_score",
]
