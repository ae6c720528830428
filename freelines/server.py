"""HTTP surface of the track service.

``POST /api/runs`` accepts a finished track from an authenticated user and
answers with the stored record and any line match. ``GET /api/lines`` lists
the approved catalog. Users are identified by static bearer tokens configured
through ``FREELINES_SERVER_TOKENS``.
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional

from flask import Flask, jsonify, request
from flask.typing import ResponseReturnValue

from .config import SERVER_TOKENS
from .errors import AuthenticationError, ServerRejectedError
from .models import FinishedTrackPayload
from .services import TrackService

LOGGER = logging.getLogger(__name__)


def _bearer_token() -> Optional[str]:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def create_app(
    service: TrackService, tokens: Mapping[str, str] | None = None
) -> Flask:
    """Build the Flask app serving ``service``."""

    user_tokens = dict(SERVER_TOKENS if tokens is None else tokens)
    if not user_tokens:
        LOGGER.warning("No server tokens configured; every submission will be refused")

    app = Flask(__name__)

    def _current_user() -> str:
        token = _bearer_token()
        user_id = user_tokens.get(token) if token else None
        if user_id is None:
            raise AuthenticationError("Unauthorized", status_code=401)
        return user_id

    @app.errorhandler(ServerRejectedError)
    def _rejected(exc: ServerRejectedError) -> ResponseReturnValue:
        status = exc.status_code or 400
        return jsonify({"message": str(exc)}), status

    @app.post("/api/runs")
    def submit_run() -> ResponseReturnValue:
        user_id = _current_user()
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            raise ServerRejectedError("Request body must be a JSON object", 400)
        try:
            payload = FinishedTrackPayload.from_dict(body)
        except (KeyError, TypeError, ValueError) as exc:
            LOGGER.info("Rejected malformed track from user=%s: %s", user_id, exc)
            raise ServerRejectedError(f"Invalid track payload: {exc}", 400) from exc

        recorded = service.record_track(user_id, payload)
        return (
            jsonify(
                {
                    "track": recorded.track.to_dict(),
                    "match": recorded.match.to_dict() if recorded.match else None,
                }
            ),
            201,
        )

    @app.get("/api/lines")
    def list_lines() -> ResponseReturnValue:
        return jsonify({"lines": [line.to_dict() for line in service.list_lines()]})

    return app


__all__ = ["create_app"]
