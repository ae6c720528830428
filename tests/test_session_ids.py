"""Tests for session identifier generation."""

from __future__ import annotations

import re

from freelines.recorder import session_ids
from freelines.recorder.session_ids import (
    CounterSessionIdGenerator,
    SecureSessionIdGenerator,
    default_session_id_generator,
)


def test_secure_ids_are_time_prefixed_and_random() -> None:
    generator = SecureSessionIdGenerator(clock=lambda: 1_700_000_000_000)
    first = generator()
    second = generator()
    assert re.fullmatch(r"018bcfe56800-[0-9a-f]{32}", first)
    assert first != second


def test_secure_ids_sort_by_creation_time() -> None:
    times = iter([1_000, 2_000, 300_000])
    generator = SecureSessionIdGenerator(clock=lambda: next(times))
    ids = [generator() for _ in range(3)]
    assert ids == sorted(ids)


def test_counter_ids_are_unique_within_one_millisecond() -> None:
    generator = CounterSessionIdGenerator(clock=lambda: 36 * 36)
    ids = [generator() for _ in range(1000)]
    assert len(set(ids)) == 1000
    assert ids[0] == "100-000001"


def test_default_generator_prefers_os_randomness() -> None:
    assert isinstance(default_session_id_generator(), SecureSessionIdGenerator)


def test_default_generator_falls_back_without_os_randomness(monkeypatch, caplog) -> None:
    def no_entropy(_n):
        raise NotImplementedError("no urandom")

    monkeypatch.setattr(session_ids.secrets, "token_bytes", no_entropy)
    generator = default_session_id_generator()
    assert isinstance(generator, CounterSessionIdGenerator)
    assert "may collide" in caplog.text
