"""Client for the remote track submission and catalog endpoints."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import requests

from ..config import API_BASE_URL, API_TOKEN, REQUEST_TIMEOUT
from ..errors import NetworkUnavailableError, ServerRejectedError
from ..models import FinishedTrackPayload, Line, MatchResult
from .response_handling import classify_response_status
from .session import get_default_session

LOGGER = logging.getLogger(__name__)

TokenProvider = Callable[[], Optional[str]]


@dataclass(slots=True)
class SubmissionResponse:
    track: Dict[str, Any]
    match: Optional[MatchResult]


def _static_token() -> Optional[str]:
    return API_TOKEN or None


class TrackSubmissionClient:
    """Submits finished tracks and reads the approved line catalog.

    Connectivity failures (connection errors, timeouts, gateway statuses) are
    raised as ``NetworkUnavailableError``; any other refusal is raised as
    ``ServerRejectedError`` so callers can tell "try later" from "never".
    """

    def __init__(
        self,
        base_url: str = API_BASE_URL,
        *,
        session: requests.Session | None = None,
        token_provider: TokenProvider | None = None,
        timeout: int = REQUEST_TIMEOUT,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._session = session or get_default_session()
        self._token_provider = token_provider or _static_token
        self._timeout = timeout

    def _url(self, endpoint: str) -> str:
        return f"{self._base_url}/api{endpoint}"

    def _headers(self) -> Dict[str, str]:
        token = self._token_provider()
        return {"Authorization": f"Bearer {token}"} if token else {}

    def _request(
        self,
        method: str,
        endpoint: str,
        context: str,
        *,
        body: Optional[Dict[str, Any]] = None,
    ) -> Any:
        url = self._url(endpoint)
        try:
            response = self._session.request(
                method,
                url,
                headers=self._headers(),
                json=body,
                timeout=self._timeout,
            )
        except (requests.ConnectionError, requests.Timeout) as exc:
            message = f"{context} network error: {exc.__class__.__name__}"
            LOGGER.warning(message)
            raise NetworkUnavailableError(message) from exc
        except requests.RequestException as exc:
            message = f"{context} request failed: {exc.__class__.__name__}"
            LOGGER.error(message)
            raise ServerRejectedError(message) from exc

        error = classify_response_status(response, context)
        if error is not None:
            raise error
        try:
            return response.json()
        except ValueError as exc:
            message = f"{context} returned non-JSON payload"
            LOGGER.error(message)
            raise ServerRejectedError(message, status_code=response.status_code) from exc

    def submit_track(self, payload: FinishedTrackPayload) -> SubmissionResponse:
        """POST a finished track; returns the stored record and any line match."""

        data = self._request("POST", "/runs", "Track submission", body=payload.to_dict())
        if not isinstance(data, dict) or not isinstance(data.get("track"), dict):
            raise ServerRejectedError("Track submission returned an unexpected body")
        match_data = data.get("match")
        try:
            match = MatchResult.from_dict(match_data) if match_data is not None else None
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            message = "Track submission returned a malformed match"
            LOGGER.error("%s: %r", message, match_data)
            raise ServerRejectedError(message) from exc
        LOGGER.info(
            "Submitted track id=%s match=%s",
            data["track"].get("id"),
            match.line_name if match else None,
        )
        return SubmissionResponse(track=data["track"], match=match)

    def list_approved_lines(self) -> List[Line]:
        data = self._request("GET", "/lines", "Line catalog")
        raw_lines = data.get("lines") if isinstance(data, dict) else None
        if not isinstance(raw_lines, list):
            raise ServerRejectedError("Line catalog returned an unexpected body")
        lines: List[Line] = []
        for item in raw_lines:
            try:
                lines.append(Line.from_dict(item))
            except (KeyError, TypeError, ValueError) as exc:
                LOGGER.debug("Skipping malformed catalog entry: %s", exc)
        return lines


__all__ = ["SubmissionResponse", "TokenProvider", "TrackSubmissionClient"]
