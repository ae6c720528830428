"""Session and queue identifier strategies.

Identifiers start with a zero-padded hex millisecond timestamp so they sort by
creation time. The secure generator appends 128 random bits from the OS
source. The counter generator is only for platforms with no OS randomness at
all; it is unique within one process but two devices starting in the same
millisecond can collide.
"""

from __future__ import annotations

import itertools
import logging
import secrets
import threading
from typing import Callable, Protocol

from ..utils import now_ms

LOGGER = logging.getLogger(__name__)


class SessionIdGenerator(Protocol):
    def __call__(self) -> str: ...


class SecureSessionIdGenerator:
    """``<ms timestamp hex>-<32 hex chars of OS randomness>``."""

    def __init__(self, clock: Callable[[], int] = now_ms) -> None:
        self._clock = clock

    def __call__(self) -> str:
        return f"{self._clock():012x}-{secrets.token_hex(16)}"


class CounterSessionIdGenerator:
    """``<ms timestamp base36>-<process counter>`` with no randomness."""

    def __init__(self, clock: Callable[[], int] = now_ms) -> None:
        self._clock = clock
        self._counter = itertools.count(1)
        self._lock = threading.Lock()

    def __call__(self) -> str:
        with self._lock:
            sequence = next(self._counter)
        return f"{_base36(self._clock())}-{sequence:06d}"


def _base36(value: int) -> str:
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    if value <= 0:
        return "0"
    out = []
    while value:
        value, rem = divmod(value, 36)
        out.append(digits[rem])
    return "".join(reversed(out))


def default_session_id_generator() -> SessionIdGenerator:
    """Return the secure generator, or the counter fallback without OS randomness."""

    try:
        secrets.token_bytes(1)
    except NotImplementedError:
        LOGGER.warning(
            "No secure random source available; session ids fall back to a "
            "timestamp counter and may collide across devices"
        )
        return CounterSessionIdGenerator()
    return SecureSessionIdGenerator()


__all__ = [
    "CounterSessionIdGenerator",
    "SecureSessionIdGenerator",
    "SessionIdGenerator",
    "default_session_id_generator",
]
