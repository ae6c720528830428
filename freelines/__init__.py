"""Freelines ski descent recorder and line matcher."""

from .main import main
from .models import FinishedTrackPayload, Line, LocationSample, MatchResult
from .errors import FreelinesError, NetworkUnavailableError, ServerRejectedError

__all__ = [
    "main",
    "FinishedTrackPayload",
    "Line",
    "LocationSample",
    "MatchResult",
    "FreelinesError",
    "NetworkUnavailableError",
    "ServerRejectedError",
]
