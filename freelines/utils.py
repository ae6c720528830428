"""General utility helpers shared across modules."""

from __future__ import annotations

import json
import time
from datetime import datetime, date, timezone
from decimal import Decimal
from typing import Any


def now_ms() -> int:
    """Return the current wall-clock time in epoch milliseconds."""

    return int(time.time() * 1000)


def ms_to_iso(timestamp_ms: int) -> str:
    """Format epoch milliseconds as an ISO-8601 UTC string."""

    return datetime.fromtimestamp(timestamp_ms / 1000.0, tz=timezone.utc).isoformat()


def iso_to_ms(value: str) -> int:
    """Parse an ISO-8601 string (``Z`` suffix allowed) into epoch milliseconds."""

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(round(parsed.timestamp() * 1000))


def datetime_to_ms(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(round(value.timestamp() * 1000))


def format_duration(seconds: int) -> str:
    """Format seconds into a ``H:MM:SS`` string."""

    hours, remainder = divmod(max(0, int(seconds)), 3600)
    mins, sec = divmod(remainder, 60)
    return f"{hours}:{mins:02d}:{sec:02d}"


def _normalise_value(value: Any) -> Any:
    """Convert objects to JSON-friendly representations."""

    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="ignore")
    if isinstance(value, set):
        return sorted(_normalise_value(item) for item in value)
    if isinstance(value, (list, tuple)):
        return [_normalise_value(item) for item in value]
    if isinstance(value, dict):
        return {str(key): _normalise_value(val) for key, val in value.items()}
    return value


def json_dumps_sorted(value: Any) -> str:
    """Return canonical JSON for hashing / comparisons."""

    normalised = _normalise_value(value)
    return json.dumps(normalised, sort_keys=True, separators=(",", ":"))
