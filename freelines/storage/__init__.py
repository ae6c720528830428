"""Durable storage for the active session checkpoint and the offline queue."""

from .base import KeyValueStore  # noqa: F401
from .file_store import JsonFileStore  # noqa: F401
from .memory import MemoryStore  # noqa: F401
from .session_store import SessionStore  # noqa: F401
