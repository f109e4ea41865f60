"""Persistent session store backed by SQLite; survives process restarts.

Drop-in replacement for MemorySessionStore when you need durability.

Usage:
    store = SqliteSessionStore(db_path="~/.contract-guard/sessions.db")
    store.save_session(session)
    recent = store.load_recent_sessions()
"""

from __future__ import annotations
import json
import logging
import sqlite3
from pathlib import Path

from .errors import UnknownSessionError
from .session import session_from_dict, session_to_dict
from .store import DEFAULT_LIMIT
from .types import ReviewSession

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS sessions (
    id TEXT PRIMARY KEY,
    document_name TEXT NOT NULL,
    timestamp REAL NOT NULL,
    payload TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_sessions_timestamp
    ON sessions(timestamp);
"""


class SqliteSessionStore:
    """Recent-sessions list persisted as JSON rows."""

    __slots__ = ("_db", "_limit")

    def __init__(self, *, db_path: str | Path = "sessions.db", limit: int = DEFAULT_LIMIT) -> None:
        db_path = Path(db_path).expanduser()
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self._db = sqlite3.connect(str(db_path), check_same_thread=False)
        self._db.executescript(_SCHEMA)
        self._limit = limit

    def save_session(self, session: ReviewSession) -> None:
        payload = json.dumps(session_to_dict(session), ensure_ascii=False)
        self._db.execute(
            "INSERT OR REPLACE INTO sessions (id, document_name, timestamp, payload) VALUES (?, ?, ?, ?)",
            (session.id, session.document.name, session.timestamp, payload),
        )
        # keep only the newest sessions
        self._db.execute(
            "DELETE FROM sessions WHERE id NOT IN "
            "(SELECT id FROM sessions ORDER BY timestamp DESC, rowid DESC LIMIT ?)",
            (self._limit,),
        )
        self._db.commit()
        logger.debug("saved session %s to sqlite", session.id)

    def load_recent_sessions(self) -> list[ReviewSession]:
        rows = self._db.execute(
            "SELECT payload FROM sessions ORDER BY timestamp DESC, rowid DESC"
        ).fetchall()
        return [session_from_dict(json.loads(payload)) for (payload,) in rows]

    def get_session(self, session_id: str) -> ReviewSession:
        row = self._db.execute(
            "SELECT payload FROM sessions WHERE id = ?", (session_id,)
        ).fetchone()
        if row is None:
            raise UnknownSessionError(session_id)
        return session_from_dict(json.loads(row[0]))

    def delete_session(self, session_id: str) -> None:
        self._db.execute("DELETE FROM sessions WHERE id = ?", (session_id,))
        self._db.commit()

    def list_sessions(self) -> list[dict]:
        """Id, document name and timestamp of each stored session, newest first."""
        rows = self._db.execute(
            "SELECT id, document_name, timestamp FROM sessions ORDER BY timestamp DESC, rowid DESC"
        ).fetchall()
        return [{"id": r[0], "document": r[1], "timestamp": r[2]} for r in rows]

    @property
    def size(self) -> int:
        return self._db.execute("SELECT COUNT(*) FROM sessions").fetchone()[0]

    def clear(self) -> None:
        self._db.execute("DELETE FROM sessions")
        self._db.commit()

    def close(self) -> None:
        self._db.close()
