"""In-memory session store, scoped to the process.

Keeps the most recent sessions only, newest first.
"""

from __future__ import annotations
import logging

from .errors import UnknownSessionError
from .types import ReviewSession

logger = logging.getLogger(__name__)

# How many sessions the history keeps
DEFAULT_LIMIT = 20


class MemorySessionStore:
    """Recent-sessions list held in memory."""

    __slots__ = ("_sessions", "_limit")

    def __init__(self, *, limit: int = DEFAULT_LIMIT) -> None:
        self._sessions: list[ReviewSession] = []
        self._limit = limit

    # ------------------------------------------------------------------
    # Core API
    # ------------------------------------------------------------------

    def save_session(self, session: ReviewSession) -> None:
        """Insert or replace a session; it becomes the newest entry."""
        rest = [s for s in self._sessions if s.id != session.id]
        self._sessions = [session, *rest][: self._limit]
        logger.debug("saved session %s (%d kept)", session.id, len(self._sessions))

    def load_recent_sessions(self) -> list[ReviewSession]:
        return list(self._sessions)

    def get_session(self, session_id: str) -> ReviewSession:
        for session in self._sessions:
            if session.id == session_id:
                return session
        raise UnknownSessionError(session_id)

    def delete_session(self, session_id: str) -> None:
        self._sessions = [s for s in self._sessions if s.id != session_id]

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def size(self) -> int:
        return len(self._sessions)

    def clear(self) -> None:
        self._sessions.clear()

    def close(self) -> None:
        pass
