"""Platform location sources and runtime selection between them."""

from __future__ import annotations

import logging

from .. import config
from ..errors import LocationUnavailableError
from .base import LocationCallback, LocationSource, WatchHandle
from .gpsd import GpsdLocationSource, parse_tpv
from .gpx_replay import GpxReplayLocationSource, load_gpx_fixes

LOGGER = logging.getLogger(__name__)


def select_location_source(
    preference: str | None = None,
    *,
    gpx_file: str | None = None,
    interval_s: float | None = None,
) -> LocationSource:
    """Pick the location source for this runtime.

    ``auto`` prefers a reachable gpsd daemon (native, background-capable) and
    falls back to replaying a configured GPX file in the foreground.
    """

    choice = (preference or config.LOCATION_SOURCE or "auto").strip().lower()
    replay_file = gpx_file if gpx_file is not None else config.GPX_REPLAY_FILE
    interval = config.GPX_REPLAY_INTERVAL_S if interval_s is None else interval_s

    if choice == "gpsd":
        return GpsdLocationSource()
    if choice == "gpx":
        return GpxReplayLocationSource(replay_file, interval_s=interval)
    if choice != "auto":
        raise ValueError(f"Unknown location source '{choice}'")

    if gpx_file:
        return GpxReplayLocationSource(gpx_file, interval_s=interval)
    gpsd = GpsdLocationSource()
    if gpsd.is_available():
        LOGGER.info("Using gpsd location source")
        return gpsd
    if replay_file:
        LOGGER.info("gpsd unavailable; replaying %s", replay_file)
        return GpxReplayLocationSource(replay_file, interval_s=interval)
    raise LocationUnavailableError(
        "No location capability: gpsd is not reachable and no GPX replay file is set"
    )


__all__ = [
    "GpsdLocationSource",
    "GpxReplayLocationSource",
    "LocationCallback",
    "LocationSource",
    "WatchHandle",
    "load_gpx_fixes",
    "parse_tpv",
    "select_location_source",
]
