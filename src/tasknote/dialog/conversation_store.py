# src/tasknote/dialog/conversation_store.py

"""
In-memory per-user conversation state.

At most one flow per user. Map access is guarded by a threading.Lock; message
handling for one user is serialized by a per-user asyncio.Lock (see
`user_turn`). Different users never share a lock.
"""

from __future__ import annotations

import asyncio
import contextlib
import threading
import weakref
from collections.abc import AsyncIterator
from dataclasses import dataclass, field, replace
from enum import StrEnum


class FlowAction(StrEnum):
    ADD_TASK = "add_task"
    ADD_NOTE = "add_note"
    SET_NOTIFICATION = "set_notification"


@dataclass(slots=True)
class ConversationState:
    action: FlowAction
    step: int = 1
    scratch: dict[str, str] = field(default_factory=dict)
    target_id: int | None = None
    room_id: str | None = None

    def copy(self) -> ConversationState:
        return replace(self, scratch=dict(self.scratch))


class ConversationStore:
    def __init__(self) -> None:
        self._states: dict[str, ConversationState] = {}
        self._mu = threading.Lock()
        # Locks live only while some handler holds a reference to them.
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def get(self, user_id: str) -> ConversationState | None:
        """Snapshot of the user's flow; mutate it and `set` it back."""
        with self._mu:
            state = self._states.get(user_id)
            return state.copy() if state is not None else None

    def set(self, user_id: str, state: ConversationState) -> None:
        """Store (or overwrite) the user's flow."""
        with self._mu:
            self._states[user_id] = state.copy()

    def clear(self, user_id: str) -> bool:
        with self._mu:
            return self._states.pop(user_id, None) is not None

    def __len__(self) -> int:
        with self._mu:
            return len(self._states)

    def _lock_for(self, user_id: str) -> asyncio.Lock:
        with self._mu:
            lock = self._locks.get(user_id)
            if lock is None:
                lock = asyncio.Lock()
                self._locks[user_id] = lock
            return lock

    @contextlib.asynccontextmanager
    async def user_turn(self, user_id: str) -> AsyncIterator[None]:
        """Hold the user's lock: one message of that user at a time."""
        lock = self._lock_for(user_id)
        async with lock:
            yield
