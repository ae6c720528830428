"""Shared HTTP response helpers for Freelines API interactions."""

from __future__ import annotations

import logging
from typing import Optional

import requests

from ..config import NETWORK_STATUS_CODES
from ..errors import (
    AuthenticationError,
    FreelinesError,
    NetworkUnavailableError,
    ServerRejectedError,
)

LOGGER = logging.getLogger(__name__)

__all__ = [
    "classify_response_status",
    "extract_error",
]


def classify_response_status(
    response: requests.Response, context: str
) -> Optional[FreelinesError]:
    """Return the error matching a non-success status, or None for 2xx."""

    status = response.status_code
    if 200 <= status < 300:
        return None

    detail = extract_error(response)

    def with_detail(message: str) -> str:
        return f"{message} | {detail}" if detail else message

    if status in NETWORK_STATUS_CODES:
        message = with_detail(f"{context} service unreachable (status {status})")
        LOGGER.warning(message)
        return NetworkUnavailableError(message)

    if status in (401, 403):
        message = with_detail(f"{context} not authorised (status {status})")
        LOGGER.warning(message)
        return AuthenticationError(message, status_code=status)

    message = with_detail(f"{context} rejected (status {status})")
    LOGGER.error(message)
    return ServerRejectedError(message, status_code=status)


def extract_error(resp: Optional[requests.Response]) -> Optional[str]:
    """Return the ``message`` of an error body, or its trimmed text."""

    if resp is None:
        return None
    try:
        data = resp.json()
    except ValueError:
        text = (getattr(resp, "text", "") or "").strip()
        return text[:300] or None
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return None
