"""HTTP session factory for Freelines API calls."""

from __future__ import annotations

import requests
from requests import Session
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..config import (
    HTTP_BACKOFF_FACTOR,
    HTTP_MAX_RETRIES,
    HTTP_POOL_CONNECTIONS,
    HTTP_POOL_MAXSIZE,
    NETWORK_STATUS_CODES,
)

__all__ = ["create_default_session", "get_default_session"]


def _build_retry() -> Retry:
    # Connect failures happen before the request is sent and are retried for
    # every method. Status retries are GET only: a gateway error on POST may
    # come after the application stored the track. The final response is
    # returned rather than raised so the client can classify it.
    return Retry(
        total=HTTP_MAX_RETRIES,
        read=0,
        backoff_factor=HTTP_BACKOFF_FACTOR,
        status_forcelist=list(NETWORK_STATUS_CODES),
        allowed_methods=["GET"],
        raise_on_status=False,
    )


def create_default_session() -> Session:
    session = requests.Session()
    adapter = HTTPAdapter(
        pool_connections=HTTP_POOL_CONNECTIONS,
        pool_maxsize=HTTP_POOL_MAXSIZE,
        max_retries=_build_retry(),
    )
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.headers.update(
        {
            "Accept-Encoding": "gzip, deflate",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
    )
    return session


_DEFAULT_SESSION: Session | None = None


def get_default_session() -> Session:
    """Return the shared default API session, creating it on first use."""

    global _DEFAULT_SESSION
    if _DEFAULT_SESSION is None:
        _DEFAULT_SESSION = create_default_session()
    return _DEFAULT_SESSION
