"""Central configuration for the Freelines track recorder and line matcher.

All values are constants imported by the rest of the package. Adjust as needed
for your environment. Secrets are read from environment variables (optionally
via a local `.env`).
"""

from __future__ import annotations

import importlib
import os


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


# Load .env variables when python-dotenv is available.
_load_dotenv = None
try:
    _dotenv_mod = importlib.import_module("dotenv")
    _load_dotenv = getattr(_dotenv_mod, "load_dotenv", None)
except Exception:
    _load_dotenv = None

if callable(_load_dotenv):
    # Load .env from the current directory or any parent folder.
    _load_dotenv()


# ---------------------------------------------------------------------------
# Track recording
# ---------------------------------------------------------------------------
# Fixes reporting a horizontal accuracy worse than this (metres) are dropped.
MIN_ACCURACY_M = _env_float("FREELINES_MIN_ACCURACY_M", 50.0)

# Fixes closer than this (metres) to the previous accepted fix are jitter.
MIN_DISTANCE_M = _env_float("FREELINES_MIN_DISTANCE_M", 5.0)

# Write a crash-recovery checkpoint after this many accepted samples.
CHECKPOINT_EVERY_N_SAMPLES = _env_int("FREELINES_CHECKPOINT_EVERY_N_SAMPLES", 10)

# A recorded track needs this many accepted samples before it can be submitted.
MIN_SUBMISSION_SAMPLES = _env_int("FREELINES_MIN_SUBMISSION_SAMPLES", 10)

# The service refuses to store tracks with fewer samples than this.
MIN_TRACK_SAMPLES = 2

# Rounding applied to every accepted sample before it is buffered.
COORDINATE_DECIMALS = 8
ELEVATION_DECIMALS = 1
ACCURACY_DECIMALS = 1


# ---------------------------------------------------------------------------
# Line matching
# ---------------------------------------------------------------------------
# Lines whose start or end lies further than this (metres) are never scored.
MATCH_CANDIDATE_RADIUS_M = _env_float("FREELINES_MATCH_CANDIDATE_RADIUS_M", 500.0)

# Full proximity score within these distances; decays to zero at 3x.
MATCH_START_THRESHOLD_M = 100.0
MATCH_END_THRESHOLD_M = 150.0
MATCH_PROXIMITY_DECAY_FACTOR = 3.0

# Relative vertical-drop difference giving full score / zero score.
MATCH_DROP_FULL_RATIO = 0.10
MATCH_DROP_ZERO_RATIO = 0.50

# Score weights (sum to 1.0). Path-shape similarity is not computed; its
# share is spread over the remaining three factors.
MATCH_WEIGHT_START = 0.35
MATCH_WEIGHT_END = 0.30
MATCH_WEIGHT_VERTICAL = 0.35

# Minimum (rounded) confidence for a match to be reported.
MATCH_THRESHOLD = _env_float("FREELINES_MATCH_THRESHOLD", 0.70)

# Seconds the approved-line catalog is cached by the matcher. 0 disables.
CATALOG_CACHE_TTL_SECONDS = _env_int("FREELINES_CATALOG_CACHE_TTL_SECONDS", 60)


# ---------------------------------------------------------------------------
# Remote service
# ---------------------------------------------------------------------------
# Base URL of the Freelines API (no trailing /api).
API_BASE_URL = os.getenv("FREELINES_API_BASE_URL", "https://api.freelines.app")

# Bearer token identifying the user. Do not hardcode secrets.
API_TOKEN = os.getenv("FREELINES_API_TOKEN", "")

# HTTP session pool sizes.
HTTP_POOL_CONNECTIONS = 4
HTTP_POOL_MAXSIZE = 4

# Request timeout in seconds. A timeout counts as a connectivity failure.
REQUEST_TIMEOUT = _env_int("FREELINES_REQUEST_TIMEOUT", 15)

# Transport-level retries for connection errors and gateway statuses.
HTTP_MAX_RETRIES = _env_int("FREELINES_HTTP_MAX_RETRIES", 3)
HTTP_BACKOFF_FACTOR = _env_float("FREELINES_HTTP_BACKOFF_FACTOR", 1.0)

# Statuses meaning the service could not be reached rather than a refusal.
NETWORK_STATUS_CODES = (502, 503, 504)


# ---------------------------------------------------------------------------
# Local durable storage
# ---------------------------------------------------------------------------
# Directory (absolute or relative) holding the session checkpoint and queue.
STORAGE_DIR = os.getenv("FREELINES_STORAGE_DIR", ".freelines")

# Logical keys of the two durable slots.
ACTIVE_SESSION_KEY = "freelines_active_session"
SUBMISSION_QUEUE_KEY = "freelines_run_queue"


# ---------------------------------------------------------------------------
# Location sources
# ---------------------------------------------------------------------------
# auto: gpsd when reachable, else GPX replay when a file is configured.
LOCATION_SOURCE = os.getenv("FREELINES_LOCATION_SOURCE", "auto").strip().lower()

GPSD_HOST = os.getenv("FREELINES_GPSD_HOST", "127.0.0.1")
GPSD_PORT = _env_int("FREELINES_GPSD_PORT", 2947)
GPSD_CONNECT_TIMEOUT = _env_float("FREELINES_GPSD_CONNECT_TIMEOUT", 2.0)

# GPX file replayed by the foreground watcher.
GPX_REPLAY_FILE = os.getenv("FREELINES_GPX_REPLAY_FILE", "")

# Seconds between replayed fixes. 0 replays as fast as possible.
GPX_REPLAY_INTERVAL_S = _env_float("FREELINES_GPX_REPLAY_INTERVAL_S", 1.0)

# Accuracy (metres) assumed for fixes that carry no error estimate, and the
# factor converting GPX hdop into an approximate horizontal accuracy.
UNKNOWN_ACCURACY_M = _env_float("FREELINES_UNKNOWN_ACCURACY_M", 5.0)
GPX_HDOP_TO_METERS = 5.0


# ---------------------------------------------------------------------------
# Local server
# ---------------------------------------------------------------------------
SERVER_HOST = os.getenv("FREELINES_SERVER_HOST", "127.0.0.1")
SERVER_PORT = _env_int("FREELINES_SERVER_PORT", 8080)

# Accepted bearer tokens as comma separated ``token:user_id`` pairs.
_server_tokens_raw = os.getenv("FREELINES_SERVER_TOKENS", "")
SERVER_TOKENS = {
    token.strip(): user.strip()
    for token, _, user in (
        pair.partition(":") for pair in _server_tokens_raw.split(",") if pair.strip()
    )
    if token.strip() and user.strip()
}

# Seed catalog loaded by ``serve`` when no --lines file is given.
SEED_LINES_FILE = os.getenv("FREELINES_SEED_LINES_FILE", "")
