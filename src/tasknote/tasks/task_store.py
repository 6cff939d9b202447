# src/tasknote/tasks/task_store.py

from __future__ import annotations

import logging
import sqlite3
import time
from pathlib import Path
from typing import Any

from .sqlite_base import SQLiteStore
from .task_models import Task, TaskPriority, TaskStatus

logger = logging.getLogger(__name__)


class TaskStore(SQLiteStore):
    """
    SQLite task store.

    The schema is intentionally simple and migration-safe:
    - create table if missing
    - add columns with ALTER TABLE only when needed

    `notify_at` is the reminder slot: non-null + in the past + pending status
    means a notification is owed. Clearing it is the only delivery marker.
    """

    def __init__(self, db_path: str | Path = "tasknote.sqlite3") -> None:
        super().__init__(db_path)
        logger.info("TaskStore ready db=%s total=%s", self._db_path, self.count_tasks())

    def _ensure_schema(self) -> None:
        with self._tx("TaskStore schema") as conn:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    room_id TEXT,
                    title TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    status TEXT NOT NULL DEFAULT 'pending',
                    priority TEXT NOT NULL DEFAULT 'medium',
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL,
                    completed_at REAL,
                    notify_at REAL
                )
                """
            )
            self._add_missing_columns(
                cur,
                "tasks",
                {
                    "room_id": "TEXT",
                    "priority": "TEXT NOT NULL DEFAULT 'medium'",
                    "completed_at": "REAL",
                    "notify_at": "REAL",
                },
            )
            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_notify ON tasks(status, notify_at)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_user ON tasks(user_id, status)")

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task(
            id=int(row["id"]),
            user_id=str(row["user_id"]),
            room_id=row["room_id"],
            title=str(row["title"] or ""),
            description=str(row["description"] or ""),
            status=TaskStatus.from_db(row["status"]),
            priority=TaskPriority.lenient(row["priority"]),
            created_at=float(row["created_at"] or 0.0),
            updated_at=float(row["updated_at"] or 0.0),
            completed_at=float(row["completed_at"]) if row["completed_at"] is not None else None,
            notify_at=float(row["notify_at"]) if row["notify_at"] is not None else None,
        )

    # ---- public API ----

    def count_tasks(self) -> int:
        with self._tx("count_tasks") as conn:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)

    def add_task(
        self,
        *,
        user_id: str,
        title: str,
        description: str = "",
        priority: TaskPriority = TaskPriority.MEDIUM,
        room_id: str | None = None,
        status: TaskStatus = TaskStatus.PENDING,
        notify_at: float | None = None,
        now_ts: float | None = None,
    ) -> int:
        if not title or not title.strip():
            raise ValueError("title is required")
        if now_ts is None:
            now_ts = time.time()

        with self._tx("add_task") as conn:
            cur = conn.execute(
                """
                INSERT INTO tasks(
                    user_id, room_id, title, description, status, priority,
                    created_at, updated_at, notify_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    user_id,
                    room_id,
                    title.strip(),
                    (description or "").strip(),
                    status.value,
                    priority.value,
                    now_ts,
                    now_ts,
                    notify_at,
                ),
            )
            rowid = cur.lastrowid
            if rowid is None:
                raise RuntimeError("SQLite did not return lastrowid for tasks insert")
            task_id = int(rowid)

        logger.debug("Task added id=%s user=%s priority=%s", task_id, user_id, priority.value)
        return task_id

    def get_task(self, task_id: int) -> Task | None:
        with self._tx("get_task") as conn:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (int(task_id),)).fetchone()
            return self._row_to_task(row) if row else None

    def list_tasks_for_user(
        self,
        user_id: str,
        *,
        status: TaskStatus | None = None,
        limit: int = 50,
    ) -> list[Task]:
        """Tasks of one user, newest first. Deleted tasks are listed only when asked for."""
        if status is None:
            sql = "SELECT * FROM tasks WHERE user_id = ? AND status != 'deleted'"
            params: list[Any] = [user_id]
        else:
            sql = "SELECT * FROM tasks WHERE user_id = ? AND status = ?"
            params = [user_id, status.value]
        sql += " ORDER BY created_at DESC, id DESC LIMIT ?"
        params.append(int(limit))

        with self._tx("list_tasks_for_user") as conn:
            return [self._row_to_task(r) for r in conn.execute(sql, params).fetchall()]

    def update_task_fields(
        self,
        task_id: int,
        *,
        title: str | None = None,
        description: str | None = None,
        status: TaskStatus | None = None,
        priority: TaskPriority | None = None,
        completed_at: float | None = None,
        notify_at: float | None = None,
        now_ts: float | None = None,
    ) -> None:
        """Partial update; None means "leave as is" (use clear_notify_at to drop a reminder)."""
        fields: list[str] = []
        params: list[Any] = []

        if title is not None:
            fields.append("title = ?")
            params.append(title.strip())

        if description is not None:
            fields.append("description = ?")
            params.append(description.strip())

        if status is not None:
            fields.append("status = ?")
            params.append(status.value)

        if priority is not None:
            fields.append("priority = ?")
            params.append(priority.value)

        if completed_at is not None:
            fields.append("completed_at = ?")
            params.append(float(completed_at))

        if notify_at is not None:
            fields.append("notify_at = ?")
            params.append(float(notify_at))

        if not fields:
            return

        fields.append("updated_at = ?")
        params.append(time.time() if now_ts is None else float(now_ts))
        params.append(int(task_id))

        sql = f"UPDATE tasks SET {', '.join(fields)} WHERE id = ?"
        with self._tx("update_task_fields") as conn:
            conn.execute(sql, params)

    def list_due_reminders(self, *, now_ts: float, limit: int = 100) -> list[Task]:
        """
        Pending tasks whose reminder is due, earliest first.

        Ties on notify_at are broken by id (insertion order).
        """
        with self._tx("list_due_reminders") as conn:
            rows = conn.execute(
                """
                SELECT *
                FROM tasks
                WHERE status = 'pending'
                  AND notify_at IS NOT NULL
                  AND notify_at <= ?
                ORDER BY notify_at ASC, id ASC
                    LIMIT ?
                """,
                (float(now_ts), int(limit)),
            ).fetchall()
            return [self._row_to_task(r) for r in rows]

    def clear_notify_at(
        self,
        task_id: int,
        *,
        expected_notify_at: float | None = None,
        now_ts: float | None = None,
    ) -> bool:
        """
        Drop the reminder of a task.

        With expected_notify_at the update only applies while the row still holds
        that exact reminder, so a reminder re-scheduled by the user in the
        meantime survives. Returns True if the row was changed.
        """
        if now_ts is None:
            now_ts = time.time()

        sql = "UPDATE tasks SET notify_at = NULL, updated_at = ? WHERE id = ?"
        params: list[Any] = [float(now_ts), int(task_id)]
        if expected_notify_at is not None:
            sql += " AND notify_at = ?"
            params.append(float(expected_notify_at))

        with self._tx("clear_notify_at") as conn:
            cur = conn.execute(sql, params)
            return cur.rowcount == 1
