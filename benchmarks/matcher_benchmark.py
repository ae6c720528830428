"""Benchmark stats recomputation and line matching with large inputs."""

from __future__ import annotations

import argparse
import statistics
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Late imports rely on the adjusted sys.path above.
from freelines.catalog import InMemoryLineCatalog  # noqa: E402
from freelines.geo import compute_stats  # noqa: E402
from freelines.matching import LineMatcher  # noqa: E402
from freelines.models import Coordinate, Line, LocationSample  # noqa: E402

_BASE_LAT = 45.9
_BASE_LON = 6.9
# ~11 m per step along the meridian.
_STEP_DEG = 1.0e-4


@dataclass(slots=True)
class StageDurations:
    """Timing measurements (in seconds) for one iteration."""

    stats: float
    match: float

    @property
    def total(self) -> float:
        return self.stats + self.match


@dataclass(slots=True)
class BenchmarkSummary:
    sample_count: int
    line_count: int
    iterations: int
    mean_stats_ms: float
    mean_match_ms: float
    mean_total_ms: float
    worst_total_ms: float


def _build_samples(count: int) -> List[LocationSample]:
    """A straight descent losing 0.5 m per sample, one fix per second."""

    return [
        LocationSample(
            latitude=_BASE_LAT + idx * _STEP_DEG,
            longitude=_BASE_LON,
            elevation=3000.0 - idx * 0.5,
            accuracy=5.0,
            speed=11.0,
            timestamp_ms=idx * 1000,
        )
        for idx in range(count)
    ]


def _build_lines(count: int, samples: List[LocationSample]) -> List[Line]:
    """Lines fanned out around the track, one of them on it."""

    first, last = samples[0], samples[-1]
    drop = first.elevation - last.elevation
    lines: List[Line] = []
    for idx in range(count):
        offset = (idx % 50) * 2.0e-3
        lines.append(
            Line(
                id=f"line-{idx}",
                name=f"Line {idx}",
                country="FR",
                start_latitude=first.latitude + offset,
                start_longitude=first.longitude + offset,
                start_elevation=first.elevation,
                end_latitude=last.latitude + offset,
                end_longitude=last.longitude,
                end_elevation=last.elevation,
                vertical_drop=drop,
                distance=0.0,
            )
        )
    return lines


def run_benchmark(sample_count: int, line_count: int, iterations: int) -> BenchmarkSummary:
    """Time ``compute_stats`` and an uncached ``LineMatcher.match``."""

    if sample_count < 2:
        raise ValueError("sample_count must be at least 2")
    if iterations <= 0:
        raise ValueError("iterations must be positive")

    samples = _build_samples(sample_count)
    matcher = LineMatcher(
        InMemoryLineCatalog(_build_lines(line_count, samples)), cache_ttl_s=0
    )
    start_coord = Coordinate(samples[0].latitude, samples[0].longitude)
    end_coord = Coordinate(samples[-1].latitude, samples[-1].longitude)
    drop = samples[0].elevation - samples[-1].elevation

    durations: List[StageDurations] = []
    for _ in range(iterations):
        start = time.perf_counter()
        compute_stats(samples, 0, samples[-1].timestamp_ms)
        stats_dur = time.perf_counter() - start

        start = time.perf_counter()
        result = matcher.match(start_coord, end_coord, drop)
        match_dur = time.perf_counter() - start
        if result is None:
            raise RuntimeError("Synthetic track failed to match its own line")
        durations.append(StageDurations(stats=stats_dur, match=match_dur))

    return BenchmarkSummary(
        sample_count=sample_count,
        line_count=line_count,
        iterations=iterations,
        mean_stats_ms=statistics.fmean(d.stats for d in durations) * 1000.0,
        mean_match_ms=statistics.fmean(d.match for d in durations) * 1000.0,
        mean_total_ms=statistics.fmean(d.total for d in durations) * 1000.0,
        worst_total_ms=max(d.total for d in durations) * 1000.0,
    )


def _format_summary(summary: BenchmarkSummary) -> Dict[str, float]:
    return {
        "sample_count": summary.sample_count,
        "line_count": summary.line_count,
        "iterations": summary.iterations,
        "mean_stats_ms": summary.mean_stats_ms,
        "mean_match_ms": summary.mean_match_ms,
        "mean_total_ms": summary.mean_total_ms,
        "worst_total_ms": summary.worst_total_ms,
    }


def _parse_args() -> argparse.Namespace:
    """Parse command-line arguments for the benchmark utility."""

    parser = argparse.ArgumentParser(
        description="Benchmark stats recomputation and line matching",
    )
    parser.add_argument(
        "--samples",
        type=int,
        default=7200,
        help="Samples in the synthetic track (two hours at 1 Hz by default)",
    )
    parser.add_argument(
        "--lines",
        type=int,
        default=5000,
        help="Approved lines in the synthetic catalog",
    )
    parser.add_argument(
        "--iterations",
        type=int,
        default=5,
        help="Number of repetitions for averaging",
    )
    return parser.parse_args()


def main() -> None:
    """Entry point when running the module as a script."""

    args = _parse_args()
    summary = run_benchmark(args.samples, args.lines, args.iterations)
    for key, value in _format_summary(summary).items():
        if key in {"sample_count", "line_count", "iterations"}:
            print(f"{key}: {value}")
        else:
            print(f"{key}: {value:.3f}")


if __name__ == "__main__":
    main()
