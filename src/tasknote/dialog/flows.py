# src/tasknote/dialog/flows.py

"""
Multi-step dialogue flows.

Three small linear automata driven one inbound message at a time:

- add_task:          title -> description ("-" skips) -> priority -> persist
- add_note:          title -> content ("-" skips) -> category -> tags ("-" skips) -> persist
- set_notification:  task id -> time expression -> persist (future times only)

Rules:
- bad input on a non-terminal step keeps the step and re-sends its prompt with
  an error prefix;
- the terminal step clears the flow before persisting, so a backend error never
  leaves the user stuck mid-flow; errors there abandon the flow;
- unknown priority/category picks fall back to medium/general.

Callers must hold `ConversationStore.user_turn(user_id)` around `advance` and
the `start_*` helpers.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable

from ..core.errors import TaskNoteError, UnrecognizedTimeFormat, ValidationError
from ..core.ports import Clock, Reply
from ..tasks.formatting import CATEGORY_CHOICES, PRIORITY_CHOICES, format_dt, format_note, format_task
from ..tasks.services import NoteService, TaskService
from ..tasks.task_models import NoteCategory, TaskPriority
from .conversation_store import ConversationState, ConversationStore, FlowAction
from .time_parser import parse_time

logger = logging.getLogger(__name__)

SKIP = "-"

_TASK_ID_RE = re.compile(r"^\d+$")

PROMPT_TASK_TITLE = "📝 New task\n\n1️⃣ Enter the task title:"
PROMPT_TASK_DESCRIPTION = '2️⃣ Enter a description (or send "-" to skip):'
PROMPT_TASK_PRIORITY = "3️⃣ Choose a priority:"

PROMPT_NOTE_TITLE = "📄 New note\n\n1️⃣ Enter the note title:"
PROMPT_NOTE_CONTENT = '2️⃣ Enter the note content (or send "-" to skip):'
PROMPT_NOTE_CATEGORY = "3️⃣ Choose a category:"
PROMPT_NOTE_TAGS = '4️⃣ Enter tags separated by commas (or send "-" to skip):'

PROMPT_REMINDER_TASK_ID = "⏰ Reminder setup\n\n1️⃣ Enter the task ID:"
PROMPT_REMINDER_TIME = (
    "2️⃣ Enter the reminder time:\n\n"
    "Examples:\n"
    "• 15:30 - today at 15:30\n"
    "• tomorrow 10:00\n"
    "• 25.12 14:00"
)

GENERIC_FAILURE = "❌ Internal error, please try again later."

StepHandler = Callable[[str, ConversationState, str], Awaitable[Reply]]


def _skip_or(text: str) -> str:
    return "" if text.strip() == SKIP else text.strip()


def _retry(error: TaskNoteError, prompt: str) -> Reply:
    return Reply(f"❌ {error.user_message}\n\n{prompt}")


class DialogEngine:
    def __init__(
        self,
        store: ConversationStore,
        tasks: TaskService,
        notes: NoteService,
        clock: Clock,
    ) -> None:
        self._store = store
        self._tasks = tasks
        self._notes = notes
        self._clock = clock
        self._steps: dict[FlowAction, StepHandler] = {
            FlowAction.ADD_TASK: self._add_task_step,
            FlowAction.ADD_NOTE: self._add_note_step,
            FlowAction.SET_NOTIFICATION: self._set_notification_step,
        }

    # ---- flow starters (overwrite any in-flight flow) ----

    def start_add_task(self, user_id: str, room_id: str | None = None) -> Reply:
        self._begin(user_id, ConversationState(action=FlowAction.ADD_TASK, room_id=room_id))
        return Reply(PROMPT_TASK_TITLE)

    def start_add_note(self, user_id: str, room_id: str | None = None, title: str | None = None) -> Reply:
        state = ConversationState(action=FlowAction.ADD_NOTE, room_id=room_id)
        if not title:
            self._begin(user_id, state)
            return Reply(PROMPT_NOTE_TITLE)

        state.scratch["title"] = title
        state.step = 2
        self._begin(user_id, state)
        return Reply(f"📄 New note: {title}\n\n{PROMPT_NOTE_CONTENT}")

    def start_set_notification(
        self,
        user_id: str,
        room_id: str | None = None,
        task_id: int | None = None,
    ) -> Reply:
        """With task_id the flow skips straight to the time step."""
        state = ConversationState(action=FlowAction.SET_NOTIFICATION, room_id=room_id)
        if task_id is None:
            self._begin(user_id, state)
            return Reply(PROMPT_REMINDER_TASK_ID)

        state.target_id = int(task_id)
        state.step = 2
        self._begin(user_id, state)
        return Reply(f"⏰ Reminder for task [{task_id}]\n\n{PROMPT_REMINDER_TIME}")

    def _begin(self, user_id: str, state: ConversationState) -> None:
        if self._store.get(user_id) is not None:
            logger.debug("Discarding in-flight flow user=%s", user_id)
        self._store.set(user_id, state)
        logger.debug("Flow started user=%s action=%s step=%s", user_id, state.action, state.step)

    def cancel(self, user_id: str) -> bool:
        return self._store.clear(user_id)

    def has_flow(self, user_id: str) -> bool:
        return self._store.get(user_id) is not None

    # ---- stepping ----

    async def advance(self, user_id: str, text: str) -> Reply | None:
        """Feed one message into the user's flow. Returns None if no flow is active."""
        state = self._store.get(user_id)
        if state is None:
            return None

        handler = self._steps.get(state.action)
        if handler is None:
            self._store.clear(user_id)
            return Reply("❌ Unknown state. Please try again.")

        return await handler(user_id, state, text)

    def _save(self, user_id: str, state: ConversationState) -> None:
        self._store.set(user_id, state)

    async def _finish(self, user_id: str, persist: Callable[[], Reply], what: str) -> Reply:
        """Terminal transition: clear the flow first, then persist in a worker thread."""
        self._store.clear(user_id)
        try:
            return await asyncio.to_thread(persist)
        except TaskNoteError as e:
            logger.info("%s rejected user=%s: %s", what, user_id, e.user_message)
            return Reply(f"❌ {e.user_message}")
        except Exception:
            logger.exception("%s failed user=%s", what, user_id)
            return Reply(GENERIC_FAILURE)

    async def _add_task_step(self, user_id: str, state: ConversationState, text: str) -> Reply:
        if state.step == 1:
            title = text.strip()
            if not title:
                return _retry(ValidationError("Task title cannot be empty."), PROMPT_TASK_TITLE)
            state.scratch["title"] = title
            state.step = 2
            self._save(user_id, state)
            return Reply(PROMPT_TASK_DESCRIPTION)

        if state.step == 2:
            state.scratch["description"] = _skip_or(text)
            state.step = 3
            self._save(user_id, state)
            return Reply(PROMPT_TASK_PRIORITY, PRIORITY_CHOICES)

        priority = TaskPriority.lenient(text)

        def persist() -> Reply:
            task = self._tasks.create_task(
                user_id,
                state.scratch.get("title", ""),
                state.scratch.get("description", ""),
                priority,
                room_id=state.room_id,
            )
            return Reply(f"✅ Task [{task.id}] created!\n{format_task(task)}")

        return await self._finish(user_id, persist, "create_task")

    async def _add_note_step(self, user_id: str, state: ConversationState, text: str) -> Reply:
        if state.step == 1:
            title = text.strip()
            if not title:
                return _retry(ValidationError("Note title cannot be empty."), PROMPT_NOTE_TITLE)
            state.scratch["title"] = title
            state.step = 2
            self._save(user_id, state)
            return Reply(PROMPT_NOTE_CONTENT)

        if state.step == 2:
            state.scratch["content"] = _skip_or(text)
            state.step = 3
            self._save(user_id, state)
            return Reply(PROMPT_NOTE_CATEGORY, CATEGORY_CHOICES)

        if state.step == 3:
            state.scratch["category"] = NoteCategory.lenient(text).value
            state.step = 4
            self._save(user_id, state)
            return Reply(PROMPT_NOTE_TAGS)

        tags = _skip_or(text)

        def persist() -> Reply:
            note = self._notes.create_note(
                user_id,
                state.scratch.get("title", ""),
                state.scratch.get("content", ""),
                NoteCategory.lenient(state.scratch.get("category")),
                tags,
            )
            return Reply(f"✅ Note [{note.id}] created!\n\n{format_note(note)}")

        return await self._finish(user_id, persist, "create_note")

    async def _set_notification_step(self, user_id: str, state: ConversationState, text: str) -> Reply:
        if state.step == 1:
            raw = text.strip()
            if not _TASK_ID_RE.match(raw) or int(raw) <= 0:
                return _retry(ValidationError("Invalid task ID. Try again."), PROMPT_REMINDER_TASK_ID)
            state.target_id = int(raw)
            state.step = 2
            self._save(user_id, state)
            return Reply(PROMPT_REMINDER_TIME)

        try:
            notify_at = parse_time(text, self._clock.now())
        except UnrecognizedTimeFormat as e:
            return _retry(e, PROMPT_REMINDER_TIME)

        task_id = int(state.target_id or 0)

        def persist() -> Reply:
            task = self._tasks.set_notification(task_id, user_id, notify_at)
            return Reply(
                "⏰ Reminder set!\n"
                f"📌 Task [{task.id}]: {task.title}\n"
                f"🕐 Time: {format_dt(notify_at)}"
            )

        return await self._finish(user_id, persist, "set_notification")
