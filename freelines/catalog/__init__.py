"""Line catalog and track storage collaborators."""

from .base import LineCatalog, TrackRepository  # noqa: F401
from .memory import (  # noqa: F401
    InMemoryLineCatalog,
    InMemoryTrackRepository,
    load_lines,
)
