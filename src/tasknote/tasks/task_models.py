# src/tasknote/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class TaskStatus(StrEnum):
    PENDING = "pending"
    COMPLETED = "completed"
    DELETED = "deleted"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.PENDING
        try:
            return cls(raw)
        except ValueError:
            return cls.PENDING


class TaskPriority(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @classmethod
    def lenient(cls, raw: str | None) -> TaskPriority:
        """Map free input to a priority; anything unknown becomes MEDIUM."""
        try:
            return cls((raw or "").strip().lower())
        except ValueError:
            return cls.MEDIUM


class NoteType(StrEnum):
    TEXT = "text"
    LINK = "link"


class NoteCategory(StrEnum):
    GENERAL = "general"
    WORK = "work"
    STUDY = "study"
    PERSONAL = "personal"
    RESOURCES = "resources"
    IDEAS = "ideas"

    @classmethod
    def lenient(cls, raw: str | None) -> NoteCategory:
        """Map free input to a category; anything unknown becomes GENERAL."""
        try:
            return cls((raw or "").strip().lower())
        except ValueError:
            return cls.GENERAL


@dataclass(slots=True)
class Task:
    id: int
    user_id: str
    room_id: str | None

    title: str
    description: str
    status: TaskStatus
    priority: TaskPriority

    created_at: float
    updated_at: float
    completed_at: float | None = None
    notify_at: float | None = None

    @property
    def is_active(self) -> bool:
        return self.status == TaskStatus.PENDING

    def reminder_due(self, now_ts: float) -> bool:
        """A notification is owed: reminder set, in the past, task still active."""
        return self.notify_at is not None and self.notify_at <= now_ts and self.is_active


@dataclass(slots=True)
class Note:
    id: int
    user_id: str

    title: str
    content: str
    type: NoteType
    category: NoteCategory
    url: str
    tags: str
    is_favorite: bool

    created_at: float
    updated_at: float

    @property
    def is_link(self) -> bool:
        return self.type == NoteType.LINK


@dataclass(slots=True, frozen=True)
class Session:
    user_id: str
    created_at: float
    expires_at: float
