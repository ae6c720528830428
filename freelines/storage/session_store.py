"""Two-slot durable store: the active session checkpoint and the offline queue.

Storage failures are never fatal here. They are logged and the store keeps
working from an in-memory mirror, so recording and queueing continue for the
lifetime of the process even when nothing reaches disk.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Optional

from ..config import ACTIVE_SESSION_KEY, SUBMISSION_QUEUE_KEY
from ..errors import StorageUnavailableError
from ..models import QueuedSubmission, TrackingSession
from .base import KeyValueStore

_LOGGER = logging.getLogger(__name__)

_RawEntry = Dict[str, Any]


class SessionStore:
    """Facade over a ``KeyValueStore`` exposing the recorder's two slots."""

    def __init__(
        self,
        store: KeyValueStore,
        *,
        session_key: str = ACTIVE_SESSION_KEY,
        queue_key: str = SUBMISSION_QUEUE_KEY,
    ) -> None:
        self._store = store
        self._session_key = session_key
        self._queue_key = queue_key
        self._lock = threading.RLock()
        # A mirror is authoritative while its slot is dirty (last write failed).
        self._session_mirror: Optional[_RawEntry] = None
        self._session_dirty = False
        self._queue_mirror: Optional[List[_RawEntry]] = None
        self._queue_dirty = False

    # --- Active session -------------------------------------------------
    def save_session(self, session: TrackingSession) -> None:
        data = session.to_dict()
        with self._lock:
            self._session_mirror = data
            try:
                self._store.put(self._session_key, data)
            except StorageUnavailableError as exc:
                self._session_dirty = True
                _LOGGER.warning(
                    "Failed to checkpoint session %s: %s", session.session_id, exc
                )
            else:
                self._session_dirty = False

    def load_session(self) -> Optional[TrackingSession]:
        with self._lock:
            if self._session_dirty:
                data = self._session_mirror
            else:
                try:
                    data = self._store.get(self._session_key)
                except StorageUnavailableError as exc:
                    _LOGGER.warning("Failed to load session checkpoint: %s", exc)
                    data = self._session_mirror
            if not data:
                return None
            try:
                return TrackingSession.from_dict(data)
            except (KeyError, TypeError, ValueError) as exc:
                _LOGGER.error("Ignoring unreadable session checkpoint: %s", exc)
                return None

    def clear_session(self) -> None:
        with self._lock:
            self._session_mirror = None
            try:
                self._store.delete(self._session_key)
            except StorageUnavailableError as exc:
                self._session_dirty = True
                _LOGGER.warning("Failed to clear session checkpoint: %s", exc)
            else:
                self._session_dirty = False

    # --- Submission queue -----------------------------------------------
    def _raw_queue(self) -> List[_RawEntry]:
        if self._queue_dirty:
            return list(self._queue_mirror or [])
        try:
            data = self._store.get(self._queue_key)
        except StorageUnavailableError as exc:
            _LOGGER.warning("Failed to read submission queue: %s", exc)
            return list(self._queue_mirror or [])
        if data is None:
            return []
        if not isinstance(data, list):
            _LOGGER.error(
                "Submission queue has unexpected type %s", type(data).__name__
            )
            return list(self._queue_mirror or [])
        return data

    def _write_queue(self, entries: List[_RawEntry]) -> None:
        self._queue_mirror = list(entries)
        try:
            self._store.put(self._queue_key, entries)
        except StorageUnavailableError as exc:
            self._queue_dirty = True
            _LOGGER.warning(
                "Failed to persist submission queue (%d entries kept in memory): %s",
                len(entries),
                exc,
            )
        else:
            if self._queue_dirty:
                _LOGGER.info("Submission queue persisted again (%d entries)", len(entries))
            self._queue_dirty = False

    def load_queue(self) -> List[QueuedSubmission]:
        """Return queued submissions in FIFO order, skipping unreadable entries."""

        with self._lock:
            raw = self._raw_queue()
        items: List[QueuedSubmission] = []
        for entry in raw:
            try:
                items.append(QueuedSubmission.from_dict(entry))
            except (KeyError, TypeError, ValueError) as exc:
                _LOGGER.error(
                    "Skipping unreadable queue entry id=%s: %s",
                    entry.get("queue_id") if isinstance(entry, dict) else "?",
                    exc,
                )
        return items

    def enqueue(self, submission: QueuedSubmission) -> None:
        with self._lock:
            entries = self._raw_queue()
            if any(
                isinstance(entry, dict) and entry.get("queue_id") == submission.queue_id
                for entry in entries
            ):
                return
            entries.append(submission.to_dict())
            self._write_queue(entries)
        _LOGGER.info(
            "Queued submission %s (%d pending)", submission.queue_id, len(entries)
        )

    def remove_from_queue(self, queue_id: str) -> None:
        with self._lock:
            entries = self._raw_queue()
            remaining = [
                entry
                for entry in entries
                if not (isinstance(entry, dict) and entry.get("queue_id") == queue_id)
            ]
            if len(remaining) == len(entries):
                return
            self._write_queue(remaining)

    def queue_count(self) -> int:
        with self._lock:
            return len(self._raw_queue())


__all__ = ["SessionStore"]
