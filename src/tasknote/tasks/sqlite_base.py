# src/tasknote/tasks/sqlite_base.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
from collections.abc import Iterator
from pathlib import Path

from ..core.errors import PersistenceError

logger = logging.getLogger(__name__)


def _casefold(value: object) -> str:
    return "" if value is None else str(value).casefold()


class SQLiteStore:
    """
    Shared plumbing for the SQLite stores.

    Thread-safety:
    - each call opens its own short-lived connection, so stores can be used
      from asyncio.to_thread workers concurrently
    - single-row updates are atomic (one statement per transaction)

    sqlite3 errors are logged and re-raised as PersistenceError.
    """

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        # SQLite LOWER() only folds ASCII.
        conn.create_function("casefold", 1, _casefold, deterministic=True)
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    @contextlib.contextmanager
    def _tx(self, what: str) -> Iterator[sqlite3.Connection]:
        """Connection scope: commit on success, always close, wrap sqlite errors."""
        conn = self._get_conn()
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            logger.exception("%s failed db=%s", what, self._db_path)
            raise PersistenceError() from e
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        raise NotImplementedError

    @staticmethod
    def _add_missing_columns(cur: sqlite3.Cursor, table: str, columns: dict[str, str]) -> None:
        """Safe migrations: add columns an older DB file does not have yet."""
        cur.execute(f"PRAGMA table_info({table})")
        existing = {row["name"] for row in cur.fetchall()}
        for name, decl in columns.items():
            if name in existing:
                continue
            cur.execute(f"ALTER TABLE {table} ADD COLUMN {name} {decl}")
            logger.info("%s migration: added column %s", table, name)
