"""HTTP client components for the Freelines API (session, response handling)."""

from .client import SubmissionResponse, TrackSubmissionClient  # noqa: F401
from .response_handling import classify_response_status, extract_error  # noqa: F401
from .session import create_default_session, get_default_session  # noqa: F401
