"""Tests for the track submission HTTP client and response classification."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import pytest
import requests

from freelines.api_client import (
    TrackSubmissionClient,
    classify_response_status,
    create_default_session,
    extract_error,
)
from freelines.errors import (
    AuthenticationError,
    NetworkUnavailableError,
    ServerRejectedError,
)

from conftest import make_payload


class FakeResp:
    def __init__(self, status: int, data: Any = None, text: str = "") -> None:
        self.status_code = status
        self._data = data
        self.text = text
        self.url = "https://api.test/api/runs"

    def json(self) -> Any:
        if self._data is None:
            raise ValueError("no json")
        return self._data


class FakeSession:
    def __init__(self, responses: List[Any]) -> None:
        self.responses = list(responses)
        self.calls: List[Dict[str, Any]] = []

    def request(self, method, url, headers=None, json=None, timeout=None):
        self.calls.append(
            {"method": method, "url": url, "headers": headers, "json": json, "timeout": timeout}
        )
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _client(responses: List[Any], token: Optional[str] = "tok") -> tuple:
    session = FakeSession(responses)
    client = TrackSubmissionClient(
        "https://api.test/",
        session=session,
        token_provider=lambda: token,
        timeout=7,
    )
    return client, session


_TRACK = {"id": "t-1", "user_id": "u-1", "sample_count": 12}
_MATCH = {
    "line_id": "vallee-blanche",
    "line_name": "Vallée Blanche",
    "confidence": 0.97,
    "average_deviation_m": 12,
}


def test_submit_track_posts_payload_with_bearer_token() -> None:
    client, session = _client([FakeResp(201, {"track": _TRACK, "match": _MATCH})])
    payload = make_payload(12)

    response = client.submit_track(payload)

    (call,) = session.calls
    assert call["method"] == "POST"
    assert call["url"] == "https://api.test/api/runs"
    assert call["headers"] == {"Authorization": "Bearer tok"}
    assert call["json"] == payload.to_dict()
    assert call["timeout"] == 7
    assert response.track == _TRACK
    assert response.match is not None
    assert response.match.line_id == "vallee-blanche"
    assert response.match.confidence == 0.97


def test_submit_track_without_match() -> None:
    client, _ = _client([FakeResp(201, {"track": _TRACK, "match": None})])
    assert client.submit_track(make_payload()).match is None


def test_no_token_sends_no_authorization_header() -> None:
    client, session = _client([FakeResp(201, {"track": _TRACK})], token=None)
    client.submit_track(make_payload())
    assert session.calls[0]["headers"] == {}


@pytest.mark.parametrize("status", [502, 503, 504])
def test_gateway_statuses_are_network_errors(status: int) -> None:
    client, _ = _client([FakeResp(status, text="upstream down")])
    with pytest.raises(NetworkUnavailableError):
        client.submit_track(make_payload())


@pytest.mark.parametrize(
    "exc", [requests.ConnectionError("refused"), requests.Timeout("slow")]
)
def test_transport_failures_are_network_errors(exc: Exception) -> None:
    client, _ = _client([exc])
    with pytest.raises(NetworkUnavailableError):
        client.submit_track(make_payload())


def test_other_request_errors_are_rejections() -> None:
    client, _ = _client([requests.exceptions.InvalidURL("bad url")])
    with pytest.raises(ServerRejectedError):
        client.submit_track(make_payload())


def test_validation_failure_is_rejection_with_detail() -> None:
    client, _ = _client([FakeResp(400, {"message": "At least 2 GPS points required"})])
    with pytest.raises(ServerRejectedError) as excinfo:
        client.submit_track(make_payload())
    assert excinfo.value.status_code == 400
    assert "At least 2 GPS points required" in str(excinfo.value)
    assert not isinstance(excinfo.value, NetworkUnavailableError)


@pytest.mark.parametrize("status", [401, 403])
def test_auth_failures_raise_authentication_error(status: int) -> None:
    client, _ = _client([FakeResp(status, {"message": "Unauthorized"})])
    with pytest.raises(AuthenticationError) as excinfo:
        client.submit_track(make_payload())
    assert excinfo.value.status_code == status


def test_non_json_success_is_rejection() -> None:
    client, _ = _client([FakeResp(200, None, text="<html>")])
    with pytest.raises(ServerRejectedError):
        client.submit_track(make_payload())


def test_unexpected_body_is_rejection() -> None:
    client, _ = _client([FakeResp(201, {"ok": True})])
    with pytest.raises(ServerRejectedError):
        client.submit_track(make_payload())


def test_list_approved_lines_skips_malformed_entries() -> None:
    good = {
        "id": "tortin",
        "name": "Tortin",
        "country": "Switzerland",
        "start_latitude": 46.080833,
        "start_longitude": 7.300833,
        "end_latitude": 46.076389,
        "end_longitude": 7.313333,
        "vertical_drop": 800,
    }
    client, session = _client([FakeResp(200, {"lines": [good, {"id": "broken"}]})])
    lines = client.list_approved_lines()
    assert [line.id for line in lines] == ["tortin"]
    assert session.calls[0]["method"] == "GET"
    assert session.calls[0]["url"] == "https://api.test/api/lines"


def test_classify_response_status_success_is_none() -> None:
    assert classify_response_status(FakeResp(204), "ctx") is None


def test_extract_error_reads_message() -> None:
    assert extract_error(FakeResp(400, {"message": "At least 2 GPS points required"})) == (
        "At least 2 GPS points required"
    )
    assert extract_error(FakeResp(400, {"error": "x"})) is None
    assert extract_error(FakeResp(400, ["x"])) is None


def test_extract_error_falls_back_to_text() -> None:
    assert extract_error(FakeResp(500, None, text="  boom  ")) == "boom"
    assert extract_error(None) is None


def test_default_session_retries_gateway_statuses_only() -> None:
    session = create_default_session()
    retry = session.get_adapter("https://api.test").max_retries
    assert set(retry.status_forcelist) == {502, 503, 504}
    assert retry.read == 0
    assert retry.raise_on_status is False
    assert retry.is_retry("GET", 503) is True
    assert retry.is_retry("GET", 500) is False
    assert session.headers["Content-Type"] == "application/json"


@pytest.mark.parametrize("status", [502, 503, 504])
def test_gateway_status_does_not_resend_track_submissions(status: int) -> None:
    retry = create_default_session().get_adapter("https://api.test").max_retries
    assert retry.is_retry("POST", status) is False


@pytest.mark.parametrize("match", [{}, {"line_id": "x"}, "vallee-blanche", {**_MATCH, "confidence": "high"}])
def test_malformed_match_is_rejection(match: Any) -> None:
    client, _ = _client([FakeResp(201, {"track": _TRACK, "match": match})])
    with pytest.raises(ServerRejectedError, match="malformed match"):
        client.submit_track(make_payload())
