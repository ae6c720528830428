"""Tests for the command line entry point."""

from __future__ import annotations

import importlib

import pytest

from freelines.errors import NetworkUnavailableError
from freelines.models import QueuedSubmission, TrackingSession
from freelines.storage import JsonFileStore, SessionStore

from conftest import FakeClient, make_payload, make_sample

cli = importlib.import_module("freelines.main")


@pytest.fixture
def storage_dir(tmp_path):
    return tmp_path / "state"


@pytest.fixture
def store(storage_dir) -> SessionStore:
    return SessionStore(JsonFileStore(storage_dir))


@pytest.fixture
def client(monkeypatch) -> FakeClient:
    fake = FakeClient()
    monkeypatch.setattr(cli, "TrackSubmissionClient", lambda *_a, **_k: fake)
    return fake


def _run(storage_dir, *args: str) -> int:
    return cli.main(["--storage-dir", str(storage_dir), *args])


def test_status_reports_pending_data(storage_dir, store, capsys) -> None:
    assert _run(storage_dir, "status") == 0
    assert "Interrupted session: none" in capsys.readouterr().out

    store.save_session(
        TrackingSession(session_id="s-9", started_at_ms=0, samples=[make_sample(0)])
    )
    store.enqueue(QueuedSubmission(queue_id="q", queued_at_ms=0, payload=make_payload()))
    assert _run(storage_dir, "status") == 0
    out = capsys.readouterr().out
    assert "s-9 (1 samples" in out
    assert "Queued tracks: 1" in out


def test_sync_drains_queue(storage_dir, store, client) -> None:
    store.enqueue(QueuedSubmission(queue_id="a", queued_at_ms=0, payload=make_payload()))
    store.enqueue(QueuedSubmission(queue_id="b", queued_at_ms=0, payload=make_payload()))
    assert _run(storage_dir, "sync") == 0
    assert len(client.submitted) == 2
    assert store.queue_count() == 0


def test_sync_with_failures_exits_non_zero(storage_dir, store, client) -> None:
    client.outcomes = [NetworkUnavailableError("offline")]
    store.enqueue(QueuedSubmission(queue_id="a", queued_at_ms=0, payload=make_payload()))
    assert _run(storage_dir, "sync") == 1
    assert store.queue_count() == 1


def test_resume_submits_interrupted_session(storage_dir, store, client) -> None:
    store.save_session(
        TrackingSession(
            session_id="crashed",
            started_at_ms=0,
            samples=[make_sample(i) for i in range(12)],
        )
    )
    assert _run(storage_dir, "resume") == 0
    assert len(client.submitted) == 1
    assert store.load_session() is None


def test_resume_discard_drops_checkpoint(storage_dir, store, client) -> None:
    store.save_session(
        TrackingSession(session_id="crashed", started_at_ms=0, samples=[make_sample(0)])
    )
    assert _run(storage_dir, "resume", "--discard") == 0
    assert client.submitted == []
    assert store.load_session() is None


def test_resume_too_short_session_is_kept(storage_dir, store, client) -> None:
    store.save_session(
        TrackingSession(session_id="short", started_at_ms=0, samples=[make_sample(0)])
    )
    assert _run(storage_dir, "resume") == 1
    assert store.load_session() is not None


def test_record_refuses_while_session_pending(storage_dir, store, client) -> None:
    store.save_session(TrackingSession(session_id="crashed", started_at_ms=0))
    assert _run(storage_dir, "record", "--gpx", "unused.gpx") == 1
