"""Public entry points for matching recorded tracks to catalogued lines."""

from .matcher import Candidate, LineMatcher  # noqa: F401
from .scoring import (  # noqa: F401
    LineScore,
    ScoreWeights,
    proximity_score,
    score_line,
    vertical_drop_score,
)
