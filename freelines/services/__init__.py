"""Service layer abstractions for track recording and matching."""

from .track_service import TrackService

__all__ = ["TrackService"]
