"""
In-memory store of prediction sessions.

Each session owns one PredictionOrchestrator. Sessions are created by
POST /api/sessions and closed on delete or after a period of inactivity;
closing a session tears its orchestrator down.
"""

import threading
import time
import uuid

from orchid_predict.core.dispatcher import Predictor
from orchid_predict.core.orchestrator import OrchestratorOptions, PredictionOrchestrator
from orchid_predict.core.profiles import PROGRESIVA, PredictionProfile


# Default session timeout: 30 minutes
DEFAULT_SESSION_TIMEOUT_SECONDS = 30 * 60


class Session:
    """A single prediction session wrapping one orchestrator."""

    def __init__(self, orchestrator: PredictionOrchestrator):
        self.orchestrator = orchestrator
        self.created_at: float = time.time()
        self.last_accessed_at: float = time.time()

    @property
    def profile(self) -> PredictionProfile:
        return self.orchestrator.profile

    def touch(self) -> None:
        self.last_accessed_at = time.time()

    def is_expired(self, timeout_seconds: int = DEFAULT_SESSION_TIMEOUT_SECONDS) -> bool:
        return (time.time() - self.last_accessed_at) > timeout_seconds

    def close(self) -> None:
        self.orchestrator.close()


class SessionStore:
    """Thread-safe in-memory map of session id to Session."""

    def __init__(self, timeout_seconds: int = DEFAULT_SESSION_TIMEOUT_SECONDS):
        self._sessions: dict[str, Session] = {}
        self._timeout_seconds = timeout_seconds
        self._lock = threading.RLock()

    def create_session(
        self,
        predictor: Predictor,
        profile: PredictionProfile = PROGRESIVA,
        options: OrchestratorOptions | None = None,
        session_id: str | None = None,
    ) -> tuple[str, Session]:
        """Create a session with a fresh orchestrator.

        Args:
            predictor: Remote operations for the orchestrator.
            profile: Call-site preset.
            options: Orchestrator options (defaults if None).
            session_id: Optional custom ID. Auto-generated if not provided.

        Returns:
            Tuple of (session_id, Session).
        """
        if session_id is None:
            session_id = str(uuid.uuid4())

        session = Session(PredictionOrchestrator(predictor, options=options, profile=profile))

        with self._lock:
            previous = self._sessions.get(session_id)
            self._sessions[session_id] = session
        if previous is not None:
            previous.close()
        return session_id, session

    def get_session(self, session_id: str) -> Session | None:
        """Retrieve a session, or None if missing or expired.

        Expired sessions are closed and removed on access.
        """
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            return None

        if session.is_expired(self._timeout_seconds):
            self.delete_session(session_id)
            return None

        session.touch()
        return session

    def delete_session(self, session_id: str) -> bool:
        """Close and remove a session. Returns True if it existed."""
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.close()
        return True

    def cleanup_expired(self) -> int:
        """Close and remove all expired sessions. Returns how many were removed."""
        with self._lock:
            expired = [
                sid for sid, session in self._sessions.items()
                if session.is_expired(self._timeout_seconds)
            ]
            removed = [self._sessions.pop(sid) for sid in expired]
        for session in removed:
            session.close()
        return len(removed)

    def close_all(self) -> None:
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for session in sessions:
            session.close()

    def count(self) -> int:
        with self._lock:
            return len(self._sessions)

    def list_session_ids(self) -> list[str]:
        with self._lock:
            return list(self._sessions.keys())
