"""Central error types used across the application."""

from __future__ import annotations


class FreelinesError(RuntimeError):
    """Base error for recorder, storage, submission and matching failures."""


class LocationPermissionError(FreelinesError):
    """Raised when access to the location source is refused."""


class LocationUnavailableError(FreelinesError):
    """Raised when the runtime has no usable location capability."""


class StorageUnavailableError(FreelinesError):
    """Raised when the durable key-value store cannot be read or written."""


class NetworkUnavailableError(FreelinesError):
    """Raised when the remote service could not be reached."""


class ServerRejectedError(FreelinesError):
    """Raised when the remote service refuses a request."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(ServerRejectedError):
    """Raised when the remote service does not accept the user's credentials."""


class InsufficientSamplesError(FreelinesError):
    """Raised when a track has too few samples to be submitted."""


class MatchingUnavailableError(FreelinesError):
    """Raised when the line catalog cannot be consulted for matching."""


__all__ = [
    "FreelinesError",
    "LocationPermissionError",
    "LocationUnavailableError",
    "StorageUnavailableError",
    "NetworkUnavailableError",
    "ServerRejectedError",
    "AuthenticationError",
    "InsufficientSamplesError",
    "MatchingUnavailableError",
]
