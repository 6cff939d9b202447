# src/tasknote/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .ports import Clock

if TYPE_CHECKING:
    from ..config import Settings
    from ..dialog.conversation_store import ConversationStore
    from ..dialog.flows import DialogEngine
    from ..tasks.note_store import NoteStore
    from ..tasks.services import NoteService, TaskService
    from ..tasks.session_store import SessionStore
    from ..tasks.task_store import TaskStore


@dataclass(slots=True)
class AppState:
    """Everything a connector needs to serve one process; built by cli.bootstrap."""

    # Settings or a SimpleNamespace with the same attributes (tests).
    settings: Settings
    clock: Clock

    task_store: TaskStore
    note_store: NoteStore
    session_store: SessionStore

    tasks: TaskService
    notes: NoteService

    conversations: ConversationStore
    engine: DialogEngine
