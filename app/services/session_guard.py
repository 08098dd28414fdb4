"""
Single-flight guard for recommendation requests.

A session may have at most one evaluation outstanding. A second request
from the same session is rejected while the first is still being
presented; it is not queued.
"""
from contextlib import contextmanager
from typing import Iterator, Set
import logging
import threading

logger = logging.getLogger(__name__)


class EvaluationInProgressError(Exception):
    """Raised when a session already has an evaluation pending."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"An evaluation is already in progress for session '{session_id}'")


class SingleFlightGuard:
    def __init__(self):
        self._lock = threading.Lock()
        self._pending: Set[str] = set()

    def try_acquire(self, session_id: str) -> bool:
        with self._lock:
            if session_id in self._pending:
                return False
            self._pending.add(session_id)
            return True

    def release(self, session_id: str) -> None:
        with self._lock:
            self._pending.discard(session_id)

    def is_pending(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._pending

    @contextmanager
    def hold(self, session_id: str) -> Iterator[None]:
        """Hold the session slot for the duration of the block."""
        if not self.try_acquire(session_id):
            logger.warning(f"[SingleFlight] Rejected overlapping evaluation for session {session_id}")
            raise EvaluationInProgressError(session_id)
        try:
            yield
        finally:
            self.release(session_id)


session_guard = SingleFlightGuard()
