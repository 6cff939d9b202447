# src/tasknote/tasks/note_store.py

from __future__ import annotations

import logging
import sqlite3
import time
from pathlib import Path

from .sqlite_base import SQLiteStore
from .task_models import Note, NoteCategory, NoteType

logger = logging.getLogger(__name__)


class NoteStore(SQLiteStore):
    """SQLite note store (same DB file as TaskStore, separate table)."""

    def __init__(self, db_path: str | Path = "tasknote.sqlite3") -> None:
        super().__init__(db_path)
        logger.info("NoteStore ready db=%s", self._db_path)

    def _ensure_schema(self) -> None:
        with self._tx("NoteStore schema") as conn:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS notes (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    title TEXT NOT NULL,
                    content TEXT NOT NULL DEFAULT '',
                    type TEXT NOT NULL DEFAULT 'text',
                    category TEXT NOT NULL DEFAULT 'general',
                    url TEXT NOT NULL DEFAULT '',
                    tags TEXT NOT NULL DEFAULT '',
                    is_favorite INTEGER NOT NULL DEFAULT 0,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )
            self._add_missing_columns(
                cur,
                "notes",
                {
                    "url": "TEXT NOT NULL DEFAULT ''",
                    "tags": "TEXT NOT NULL DEFAULT ''",
                    "is_favorite": "INTEGER NOT NULL DEFAULT 0",
                },
            )
            cur.execute("CREATE INDEX IF NOT EXISTS idx_notes_user ON notes(user_id, category)")

    @staticmethod
    def _row_to_note(row: sqlite3.Row) -> Note:
        raw_type = row["type"]
        return Note(
            id=int(row["id"]),
            user_id=str(row["user_id"]),
            title=str(row["title"] or ""),
            content=str(row["content"] or ""),
            type=NoteType.LINK if raw_type == NoteType.LINK.value else NoteType.TEXT,
            category=NoteCategory.lenient(row["category"]),
            url=str(row["url"] or ""),
            tags=str(row["tags"] or ""),
            is_favorite=bool(row["is_favorite"]),
            created_at=float(row["created_at"] or 0.0),
            updated_at=float(row["updated_at"] or 0.0),
        )

    def add_note(
        self,
        *,
        user_id: str,
        title: str,
        content: str = "",
        note_type: NoteType = NoteType.TEXT,
        category: NoteCategory = NoteCategory.GENERAL,
        url: str = "",
        tags: str = "",
        now_ts: float | None = None,
    ) -> int:
        if not title or not title.strip():
            raise ValueError("title is required")
        if now_ts is None:
            now_ts = time.time()

        with self._tx("add_note") as conn:
            cur = conn.execute(
                """
                INSERT INTO notes(
                    user_id, title, content, type, category, url, tags,
                    created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    user_id,
                    title.strip(),
                    content,
                    note_type.value,
                    category.value,
                    url,
                    tags,
                    now_ts,
                    now_ts,
                ),
            )
            rowid = cur.lastrowid
            if rowid is None:
                raise RuntimeError("SQLite did not return lastrowid for notes insert")
            note_id = int(rowid)

        logger.debug("Note added id=%s user=%s category=%s", note_id, user_id, category.value)
        return note_id

    def get_note(self, note_id: int) -> Note | None:
        with self._tx("get_note") as conn:
            row = conn.execute("SELECT * FROM notes WHERE id = ?", (int(note_id),)).fetchone()
            return self._row_to_note(row) if row else None

    def list_notes_for_user(
        self,
        user_id: str,
        *,
        limit: int = 50,
        favorites_only: bool = False,
        note_type: NoteType | None = None,
    ) -> list[Note]:
        sql = "SELECT * FROM notes WHERE user_id = ?"
        params: list[object] = [user_id]
        if favorites_only:
            sql += " AND is_favorite = 1"
        if note_type is not None:
            sql += " AND type = ?"
            params.append(note_type.value)
        sql += " ORDER BY created_at DESC, id DESC LIMIT ?"
        params.append(int(limit))

        with self._tx("list_notes_for_user") as conn:
            rows = conn.execute(sql, params).fetchall()
            return [self._row_to_note(r) for r in rows]

    def search_notes(self, user_id: str, query: str, *, limit: int = 50) -> list[Note]:
        """Case-insensitive substring match over title, content and tags."""
        needle = query.casefold()
        with self._tx("search_notes") as conn:
            rows = conn.execute(
                """
                SELECT *
                FROM notes
                WHERE user_id = ?
                  AND (
                    instr(casefold(title), ?) > 0
                    OR instr(casefold(content), ?) > 0
                    OR instr(casefold(tags), ?) > 0
                  )
                ORDER BY created_at DESC, id DESC
                    LIMIT ?
                """,
                (user_id, needle, needle, needle, int(limit)),
            ).fetchall()
            return [self._row_to_note(r) for r in rows]

    def set_favorite(self, note_id: int, is_favorite: bool, *, now_ts: float | None = None) -> bool:
        if now_ts is None:
            now_ts = time.time()
        with self._tx("set_favorite") as conn:
            cur = conn.execute(
                "UPDATE notes SET is_favorite = ?, updated_at = ? WHERE id = ?",
                (1 if is_favorite else 0, now_ts, int(note_id)),
            )
            return cur.rowcount > 0

    def delete_note(self, note_id: int) -> bool:
        with self._tx("delete_note") as conn:
            cur = conn.execute("DELETE FROM notes WHERE id = ?", (int(note_id),))
            return cur.rowcount > 0
