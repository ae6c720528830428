"""Geodesic helpers: haversine distance and track statistics.

Everything here is a pure function of its arguments (plus the wall clock for
``compute_stats`` when ``now_ms`` is omitted).
"""

from __future__ import annotations

import math
from typing import Protocol, Sequence

import numpy as np
from numpy.typing import NDArray

from .models import LocationSample, TrackingStats
from .utils import now_ms as _now_ms

EARTH_RADIUS_M = 6_371_000.0
_MS_TO_KMH = 3.6


class HasLatLon(Protocol):
    @property
    def latitude(self) -> float: ...

    @property
    def longitude(self) -> float: ...


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in metres between two lat/lon pairs."""

    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    sin_half_lat = math.sin(math.radians(lat2 - lat1) / 2.0)
    sin_half_lon = math.sin(math.radians(lon2 - lon1) / 2.0)
    h = sin_half_lat**2 + math.cos(lat1_rad) * math.cos(lat2_rad) * sin_half_lon**2
    return 2.0 * EARTH_RADIUS_M * math.asin(math.sqrt(min(1.0, h)))


def haversine_distance(a: HasLatLon, b: HasLatLon) -> float:
    """Great-circle distance in metres between two located objects."""

    return haversine_m(a.latitude, a.longitude, b.latitude, b.longitude)


def haversine_many(
    latitude: float,
    longitude: float,
    latitudes: Sequence[float] | NDArray[np.float64],
    longitudes: Sequence[float] | NDArray[np.float64],
) -> NDArray[np.float64]:
    """Distances in metres from one point to each of many points."""

    lats = np.radians(np.asarray(latitudes, dtype=float))
    lons = np.radians(np.asarray(longitudes, dtype=float))
    lat0 = math.radians(latitude)
    lon0 = math.radians(longitude)
    h = (
        np.sin((lats - lat0) / 2.0) ** 2
        + math.cos(lat0) * np.cos(lats) * np.sin((lons - lon0) / 2.0) ** 2
    )
    return 2.0 * EARTH_RADIUS_M * np.arcsin(np.sqrt(np.minimum(1.0, h)))


def total_distance(samples: Sequence[HasLatLon]) -> float:
    """Sum of consecutive haversine distances along a track (metres)."""

    dist = 0.0
    for previous, current in zip(samples, samples[1:]):
        dist += haversine_distance(previous, current)
    return dist


def vertical_drop(samples: Sequence[LocationSample]) -> float:
    """Highest minus lowest elevation across the samples (metres)."""

    if not samples:
        return 0.0
    elevations = [sample.elevation for sample in samples]
    return max(elevations) - min(elevations)


def ms_to_kmh(speed_ms: float) -> float:
    return speed_ms * _MS_TO_KMH


def compute_stats(
    samples: Sequence[LocationSample],
    started_at_ms: int,
    now_ms: int | None = None,
) -> TrackingStats:
    """Fold the sample sequence once into a ``TrackingStats`` snapshot."""

    now = _now_ms() if now_ms is None else now_ms
    duration = now - started_at_ms
    if not samples:
        return TrackingStats(duration_ms=duration)

    dist = 0.0
    max_speed = 0.0
    max_elev = -math.inf
    min_elev = math.inf
    previous: LocationSample | None = None
    for sample in samples:
        if previous is not None:
            dist += haversine_distance(previous, sample)
        if sample.speed is not None and sample.speed > max_speed:
            max_speed = sample.speed
        if sample.elevation > max_elev:
            max_elev = sample.elevation
        if sample.elevation < min_elev:
            min_elev = sample.elevation
        previous = sample

    last = samples[-1]
    return TrackingStats(
        duration_ms=duration,
        distance_m=dist,
        vertical_drop_m=max_elev - min_elev,
        max_speed_kmh=ms_to_kmh(max_speed),
        current_speed_kmh=ms_to_kmh(last.speed or 0.0),
        sample_count=len(samples),
        max_elevation_m=max_elev,
        min_elevation_m=min_elev,
    )


__all__ = [
    "EARTH_RADIUS_M",
    "compute_stats",
    "haversine_distance",
    "haversine_m",
    "haversine_many",
    "ms_to_kmh",
    "total_distance",
    "vertical_drop",
]
