# src/tasknote/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps connectors/storage swappable and makes testing easier.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Protocol


@dataclass(slots=True, frozen=True)
class Choice:
    """
    A quick-reply option attached to an outbound message.

    `value` is the exact text the user would send to pick it
    (e.g. "high" or "/complete 12"); connectors decide how to render it.
    """

    label: str
    value: str


@dataclass(slots=True, frozen=True)
class Reply:
    text: str
    choices: tuple[Choice, ...] = ()


class Clock(Protocol):
    """Source of "now" (aware datetime). Injected so tests can pin time."""

    def now(self) -> datetime: ...


class OutboundMessenger(Protocol):
    """
    Connector-side port: how services (reminder scheduler) send text outward.

    Implementations raise on delivery failure; callers log and move on.
    """

    def send_text(
            self,
            *,
            text: str,
            room_id: str | None = None,
            to_user_id: str | None = None,
            choices: tuple[Choice, ...] = (),
    ) -> Awaitable[None]: ...


class TaskRepo(Protocol):
    def add_task(
            self,
            *,
            user_id: str,
            title: str,
            description: str = "",
            priority: Any = None,
            room_id: str | None = None,
            status: Any = None,
            notify_at: float | None = None,
            now_ts: float | None = None,
    ) -> int: ...

    def get_task(self, task_id: int) -> Any | None: ...
    def list_tasks_for_user(self, user_id: str, *, status: Any | None = None, limit: int = 50) -> list[Any]: ...

    def update_task_fields(
            self,
            task_id: int,
            *,
            title: str | None = None,
            description: str | None = None,
            status: Any | None = None,
            priority: Any | None = None,
            completed_at: float | None = None,
            notify_at: float | None = None,
            now_ts: float | None = None,
    ) -> None: ...

    # Scheduler API
    def list_due_reminders(self, *, now_ts: float, limit: int = 100) -> list[Any]: ...
    def clear_notify_at(
            self,
            task_id: int,
            *,
            expected_notify_at: float | None = None,
            now_ts: float | None = None,
    ) -> bool: ...


class NoteRepo(Protocol):
    def add_note(
            self,
            *,
            user_id: str,
            title: str,
            content: str = "",
            note_type: Any = None,
            category: Any = None,
            url: str = "",
            tags: str = "",
            now_ts: float | None = None,
    ) -> int: ...

    def get_note(self, note_id: int) -> Any | None: ...
    def list_notes_for_user(
            self,
            user_id: str,
            *,
            limit: int = 50,
            favorites_only: bool = False,
            note_type: Any | None = None,
    ) -> list[Any]: ...
    def search_notes(self, user_id: str, query: str, *, limit: int = 50) -> list[Any]: ...
    def set_favorite(self, note_id: int, is_favorite: bool, *, now_ts: float | None = None) -> bool: ...
    def delete_note(self, note_id: int) -> bool: ...


class SessionRepo(Protocol):
    def touch_session(self, user_id: str, *, now_ts: float, ttl_seconds: float) -> None: ...
    def delete_session(self, user_id: str) -> bool: ...
    def purge_expired(self, *, now_ts: float) -> int: ...
