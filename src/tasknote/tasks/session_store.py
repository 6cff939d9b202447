# src/tasknote/tasks/session_store.py

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from .sqlite_base import SQLiteStore
from .task_models import Session

logger = logging.getLogger(__name__)


class SessionStore(SQLiteStore):
    """
    Per-user activity sessions.

    A session is opened (or extended) on every inbound message and expires
    `ttl_seconds` after the last one. Expired rows are removed by the periodic
    sweep in task_scheduler.run_session_sweeper.
    """

    def __init__(self, db_path: str | Path = "tasknote.sqlite3") -> None:
        super().__init__(db_path)
        logger.info("SessionStore ready db=%s", self._db_path)

    def _ensure_schema(self) -> None:
        with self._tx("SessionStore schema") as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS sessions (
                    user_id TEXT PRIMARY KEY,
                    created_at REAL NOT NULL,
                    expires_at REAL NOT NULL
                )
                """
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_sessions_expires ON sessions(expires_at)")

    @staticmethod
    def _row_to_session(row: sqlite3.Row) -> Session:
        return Session(
            user_id=str(row["user_id"]),
            created_at=float(row["created_at"]),
            expires_at=float(row["expires_at"]),
        )

    def touch_session(self, user_id: str, *, now_ts: float, ttl_seconds: float) -> None:
        """Open a session for user_id or push its expiry forward."""
        expires_at = float(now_ts) + max(0.0, float(ttl_seconds))
        with self._tx("touch_session") as conn:
            conn.execute(
                """
                INSERT INTO sessions(user_id, created_at, expires_at)
                VALUES (?, ?, ?)
                ON CONFLICT(user_id) DO UPDATE SET expires_at = excluded.expires_at
                """,
                (user_id, float(now_ts), expires_at),
            )

    def get_session(self, user_id: str) -> Session | None:
        with self._tx("get_session") as conn:
            row = conn.execute("SELECT * FROM sessions WHERE user_id = ?", (user_id,)).fetchone()
            return self._row_to_session(row) if row else None

    def delete_session(self, user_id: str) -> bool:
        with self._tx("delete_session") as conn:
            cur = conn.execute("DELETE FROM sessions WHERE user_id = ?", (user_id,))
            return cur.rowcount > 0

    def purge_expired(self, *, now_ts: float) -> int:
        """Delete sessions whose expiry has passed. Returns the number of removed rows."""
        with self._tx("purge_expired") as conn:
            cur = conn.execute("DELETE FROM sessions WHERE expires_at < ?", (float(now_ts),))
            removed = int(cur.rowcount or 0)
        if removed:
            logger.info("Purged %d expired session(s).", removed)
        return removed
