"""Tests for TrackService: storing tracks and linking them to lines."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor

import pytest

from freelines.catalog import InMemoryLineCatalog, InMemoryTrackRepository
from freelines.errors import MatchingUnavailableError, ServerRejectedError
from freelines.matching import LineMatcher
from freelines.services import TrackService

from conftest import make_line, make_payload


def _matching_line(payload, line_id: str = "line"):
    return make_line(
        line_id,
        start_latitude=payload.start_latitude,
        start_longitude=payload.start_longitude,
        end_latitude=payload.end_latitude,
        end_longitude=payload.end_longitude,
        vertical_drop=payload.vertical_drop_meters,
    )


class _UnavailableMatcher:
    def match_payload(self, payload):
        raise MatchingUnavailableError("catalog offline")


def test_matched_track_is_linked_and_counted() -> None:
    payload = make_payload(12)
    catalog = InMemoryLineCatalog([_matching_line(payload)])
    repository = InMemoryTrackRepository()
    service = TrackService(repository, catalog)

    recorded = service.record_track("user-1", payload)

    assert recorded.match is not None
    assert recorded.match.line_id == "line"
    assert recorded.track.line_id == "line"
    assert recorded.track.match_confidence == recorded.match.confidence
    line = catalog.get_line("line")
    assert line.run_count == 1
    assert line.updated_at is not None
    (stored,) = repository.list_tracks("user-1")
    assert stored.line_id == "line"


def test_unmatched_track_is_stored_without_line() -> None:
    payload = make_payload(12)
    far_line = make_line("far", start_latitude=10.0, end_latitude=10.01)
    catalog = InMemoryLineCatalog([far_line])
    service = TrackService(InMemoryTrackRepository(), catalog)

    recorded = service.record_track("user-1", payload)

    assert recorded.match is None
    assert recorded.track.line_id is None
    assert catalog.get_line("far").run_count == 0


def test_track_with_too_few_samples_is_rejected() -> None:
    repository = InMemoryTrackRepository()
    service = TrackService(repository, InMemoryLineCatalog([]))
    with pytest.raises(ServerRejectedError) as excinfo:
        service.record_track("user-1", make_payload(1))
    assert excinfo.value.status_code == 400
    assert repository.list_tracks("user-1") == []


def test_two_samples_are_enough_for_the_service() -> None:
    service = TrackService(InMemoryTrackRepository(), InMemoryLineCatalog([]))
    recorded = service.record_track("user-1", make_payload(2))
    assert recorded.track.id


def test_matching_outage_still_stores_track(caplog) -> None:
    repository = InMemoryTrackRepository()
    service = TrackService(
        repository, InMemoryLineCatalog([]), matcher=_UnavailableMatcher()
    )
    with caplog.at_level(logging.WARNING, logger="TrackService"):
        recorded = service.record_track("user-1", make_payload(12))
    assert recorded.match is None
    assert len(repository.list_tracks("user-1")) == 1
    assert "Line matching skipped" in caplog.text


def test_tracks_are_listed_per_user() -> None:
    repository = InMemoryTrackRepository()
    service = TrackService(repository, InMemoryLineCatalog([]))
    service.record_track("alice", make_payload(3))
    service.record_track("bob", make_payload(3))
    service.record_track("alice", make_payload(4))
    assert len(repository.list_tracks("alice")) == 2
    assert len(repository.list_tracks("bob")) == 1


def test_concurrent_matches_do_not_lose_usage_counts() -> None:
    payload = make_payload(12)
    catalog = InMemoryLineCatalog([_matching_line(payload)])
    service = TrackService(
        InMemoryTrackRepository(), catalog, LineMatcher(catalog, cache_ttl_s=0)
    )

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(
            pool.map(lambda idx: service.record_track(f"user-{idx % 3}", payload), range(50))
        )

    assert all(result.match is not None for result in results)
    assert catalog.get_line("line").run_count == 50


def test_increment_unknown_line_raises() -> None:
    with pytest.raises(KeyError):
        InMemoryLineCatalog([]).increment_usage("missing")


def test_list_lines_returns_approved_only() -> None:
    catalog = InMemoryLineCatalog([make_line("a"), make_line("b", status="rejected")])
    service = TrackService(InMemoryTrackRepository(), catalog)
    assert [line.id for line in service.list_lines()] == ["a"]


class _UncountableCatalog(InMemoryLineCatalog):
    def increment_usage(self, line_id: str) -> None:
        raise RuntimeError("counter store offline")


def test_counter_failure_keeps_reported_match(caplog) -> None:
    payload = make_payload(12)
    catalog = _UncountableCatalog([_matching_line(payload)])
    repository = InMemoryTrackRepository()
    service = TrackService(repository, catalog)

    with caplog.at_level(logging.ERROR):
        recorded = service.record_track("user-1", payload)

    assert recorded.match is not None
    assert recorded.track.line_id == recorded.match.line_id == "line"
    (stored,) = repository.list_tracks("user-1")
    assert stored.line_id == "line"
    assert catalog.get_line("line").run_count == 0
    assert "Failed to count run on line line" in caplog.text
