"""Tests for haversine distance and track statistics."""

from __future__ import annotations

import math

import pytest

from freelines.geo import (
    compute_stats,
    haversine_distance,
    haversine_m,
    haversine_many,
    ms_to_kmh,
    total_distance,
    vertical_drop,
)
from freelines.models import Coordinate

from conftest import BASE_LAT, BASE_LON, LAT_STEP, make_sample

# 1e-4 degrees of latitude on a 6,371 km sphere.
STEP_M = 6_371_000.0 * math.radians(LAT_STEP)


def test_haversine_zero_and_symmetric() -> None:
    a = Coordinate(45.878472, 6.887247)
    b = Coordinate(45.923556, 6.869625)
    assert haversine_distance(a, a) == 0.0
    assert haversine_distance(a, b) == pytest.approx(haversine_distance(b, a))


def test_haversine_one_degree_of_longitude_at_equator() -> None:
    assert haversine_m(0.0, 0.0, 0.0, 1.0) == pytest.approx(111_194.9, rel=1e-5)


def test_haversine_antipodes_do_not_overflow() -> None:
    half_circumference = math.pi * 6_371_000.0
    assert haversine_m(0.0, 0.0, 0.0, 180.0) == pytest.approx(half_circumference)


def test_haversine_many_matches_scalar() -> None:
    lats = [BASE_LAT, BASE_LAT + 0.01, BASE_LAT - 0.02]
    lons = [BASE_LON, BASE_LON + 0.01, BASE_LON - 0.03]
    result = haversine_many(BASE_LAT, BASE_LON, lats, lons)
    expected = [haversine_m(BASE_LAT, BASE_LON, la, lo) for la, lo in zip(lats, lons)]
    assert result.tolist() == pytest.approx(expected)


def test_total_distance_and_vertical_drop() -> None:
    samples = [make_sample(i) for i in range(5)]
    assert total_distance(samples) == pytest.approx(4 * STEP_M, rel=1e-6)
    assert vertical_drop(samples) == pytest.approx(8.0)
    assert total_distance(samples[:1]) == 0.0
    assert vertical_drop([]) == 0.0


def test_vertical_drop_is_max_minus_min_not_first_minus_last() -> None:
    samples = [
        make_sample(0, elevation=2000.0),
        make_sample(1, elevation=2300.0),
        make_sample(2, elevation=1800.0),
        make_sample(3, elevation=1900.0),
    ]
    assert vertical_drop(samples) == pytest.approx(500.0)


def test_compute_stats_for_descent() -> None:
    samples = [make_sample(i) for i in range(5)]
    samples[2] = make_sample(2, speed=15.0)
    samples[4] = make_sample(4, speed=None)

    stats = compute_stats(samples, started_at_ms=1_000, now_ms=61_000)

    assert stats.duration_ms == 60_000
    assert stats.sample_count == 5
    assert stats.distance_m == pytest.approx(4 * STEP_M, rel=1e-6)
    assert stats.vertical_drop_m == pytest.approx(8.0)
    assert stats.max_speed_kmh == pytest.approx(54.0)
    assert stats.current_speed_kmh == 0.0
    assert stats.max_elevation_m == pytest.approx(3000.0)
    assert stats.min_elevation_m == pytest.approx(2992.0)


def test_compute_stats_empty_buffer_still_reports_duration() -> None:
    stats = compute_stats([], started_at_ms=5_000, now_ms=8_000)
    assert stats.duration_ms == 3_000
    assert stats.sample_count == 0
    assert stats.distance_m == 0.0
    assert stats.vertical_drop_m == 0.0


def test_ms_to_kmh() -> None:
    assert ms_to_kmh(10.0) == pytest.approx(36.0)
