# src/tasknote/tasks/services.py

"""
Business rules over the stores.

Services are synchronous (SQLite underneath); async callers run them through
asyncio.to_thread. Expected failures are raised as core.errors exceptions with
a user-facing message.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime

from ..core.errors import NotFoundError, OwnershipError, ValidationError
from ..core.ports import Clock, NoteRepo, TaskRepo
from .task_models import Note, NoteCategory, NoteType, Task, TaskPriority, TaskStatus

logger = logging.getLogger(__name__)

_URL_RE = re.compile(r"^https?://\S+$", re.IGNORECASE)


class TaskService:
    def __init__(self, repo: TaskRepo, clock: Clock) -> None:
        self._repo = repo
        self._clock = clock

    def _now_ts(self) -> float:
        return self._clock.now().timestamp()

    def create_task(
        self,
        user_id: str,
        title: str,
        description: str = "",
        priority: TaskPriority = TaskPriority.MEDIUM,
        room_id: str | None = None,
    ) -> Task:
        title = (title or "").strip()
        if not title:
            raise ValidationError("Task title cannot be empty.")

        task_id = self._repo.add_task(
            user_id=user_id,
            title=title,
            description=(description or "").strip(),
            priority=priority,
            room_id=room_id,
            now_ts=self._now_ts(),
        )
        logger.info("Task created task_id=%s user=%s", task_id, user_id)
        return self._get(task_id)

    def _get(self, task_id: int) -> Task:
        task = self._repo.get_task(task_id)
        if task is None or task.status == TaskStatus.DELETED:
            raise NotFoundError(f"Task [{task_id}] not found.")
        return task

    def get_owned_task(self, task_id: int, user_id: str) -> Task:
        task = self._get(task_id)
        if task.user_id != user_id:
            raise OwnershipError(f"Task [{task_id}] belongs to another user.")
        return task

    def list_tasks(self, user_id: str, status: TaskStatus | None = None) -> list[Task]:
        return self._repo.list_tasks_for_user(user_id, status=status)

    def complete_task(self, task_id: int, user_id: str) -> Task:
        task = self.get_owned_task(task_id, user_id)
        if task.status == TaskStatus.COMPLETED:
            raise ValidationError(f"Task [{task_id}] is already completed.")

        now_ts = self._now_ts()
        self._repo.update_task_fields(
            task_id, status=TaskStatus.COMPLETED, completed_at=now_ts, now_ts=now_ts
        )
        logger.info("Task completed task_id=%s user=%s", task_id, user_id)
        return self._get(task_id)

    def delete_task(self, task_id: int, user_id: str) -> None:
        self.get_owned_task(task_id, user_id)
        self._repo.update_task_fields(task_id, status=TaskStatus.DELETED, now_ts=self._now_ts())
        logger.info("Task deleted task_id=%s user=%s", task_id, user_id)

    def set_notification(self, task_id: int, user_id: str, notify_at: datetime) -> Task:
        """Attach a reminder; only active tasks, only strictly future times."""
        task = self.get_owned_task(task_id, user_id)
        if not task.is_active:
            raise ValidationError("Cannot set a reminder on a completed or deleted task.")

        now = self._clock.now()
        if notify_at <= now:
            raise ValidationError("Reminder time must be in the future.")

        self._repo.update_task_fields(
            task_id, notify_at=notify_at.timestamp(), now_ts=now.timestamp()
        )
        logger.info("Reminder set task_id=%s notify_at=%s", task_id, notify_at.isoformat())
        return self._get(task_id)


def extract_url(content: str) -> str:
    """First line of `content` that is a bare http(s) URL, or ""."""
    for line in (content or "").splitlines():
        line = line.strip()
        if _URL_RE.match(line):
            return line
    return ""


class NoteService:
    def __init__(self, repo: NoteRepo, clock: Clock) -> None:
        self._repo = repo
        self._clock = clock

    def create_note(
        self,
        user_id: str,
        title: str,
        content: str = "",
        category: NoteCategory = NoteCategory.GENERAL,
        tags: str = "",
    ) -> Note:
        title = (title or "").strip()
        if not title:
            raise ValidationError("Note title cannot be empty.")

        url = extract_url(content)
        note_id = self._repo.add_note(
            user_id=user_id,
            title=title,
            content=content,
            note_type=NoteType.LINK if url else NoteType.TEXT,
            category=category,
            url=url,
            tags=_normalize_tags(tags),
            now_ts=self._clock.now().timestamp(),
        )
        logger.info("Note created note_id=%s user=%s", note_id, user_id)

        return self._get(note_id)

    def _get(self, note_id: int) -> Note:
        note = self._repo.get_note(note_id)
        if note is None:
            raise NotFoundError(f"Note [{note_id}] not found.")
        return note

    def get_owned_note(self, note_id: int, user_id: str) -> Note:
        note = self._get(note_id)
        if note.user_id != user_id:
            raise OwnershipError(f"Note [{note_id}] belongs to another user.")
        return note

    def list_notes(self, user_id: str) -> list[Note]:
        return self._repo.list_notes_for_user(user_id)

    def list_favorites(self, user_id: str) -> list[Note]:
        return self._repo.list_notes_for_user(user_id, favorites_only=True)

    def list_links(self, user_id: str) -> list[Note]:
        return self._repo.list_notes_for_user(user_id, note_type=NoteType.LINK)

    def search_notes(self, user_id: str, query: str) -> list[Note]:
        query = (query or "").strip()
        if not query:
            raise ValidationError("Search query cannot be empty.")
        return self._repo.search_notes(user_id, query)

    def toggle_favorite(self, note_id: int, user_id: str) -> Note:
        note = self.get_owned_note(note_id, user_id)
        self._repo.set_favorite(note_id, not note.is_favorite, now_ts=self._clock.now().timestamp())
        logger.info("Note favorite toggled note_id=%s favorite=%s", note_id, not note.is_favorite)
        return self._get(note_id)

    def delete_note(self, note_id: int, user_id: str) -> None:
        self.get_owned_note(note_id, user_id)
        self._repo.delete_note(note_id)
        logger.info("Note deleted note_id=%s user=%s", note_id, user_id)


def _normalize_tags(raw: str) -> str:
    parts = [p.strip() for p in (raw or "").split(",")]
    return ", ".join(p for p in parts if p)
