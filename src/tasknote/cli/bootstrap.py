# src/tasknote/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires stores, services and the dialog engine into AppState.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.clock import SystemClock
from ..core.ports import Clock
from ..core.state import AppState
from ..dialog.conversation_store import ConversationStore
from ..dialog.flows import DialogEngine
from ..tasks.note_store import NoteStore
from ..tasks.services import NoteService, TaskService
from ..tasks.session_store import SessionStore
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)
    if getattr(settings, "matrix_enabled", False):
        settings.matrix_store_path.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None, clock: Clock | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    If settings is None, falls back to get_settings(). Tasks, notes and sessions
    share one SQLite file.
    """
    if settings is None:
        settings = get_settings()
    if clock is None:
        clock = SystemClock()

    _ensure_local_dirs(settings)

    task_store = TaskStore(settings.tasks_db_path)
    note_store = NoteStore(settings.tasks_db_path)
    session_store = SessionStore(settings.tasks_db_path)

    tasks = TaskService(task_store, clock)
    notes = NoteService(note_store, clock)
    conversations = ConversationStore()

    state = AppState(
        settings=settings,
        clock=clock,
        task_store=task_store,
        note_store=note_store,
        session_store=session_store,
        tasks=tasks,
        notes=notes,
        conversations=conversations,
        engine=DialogEngine(conversations, tasks, notes, clock),
    )
    logger.debug("State ready db=%s", settings.tasks_db_path)
    return state
