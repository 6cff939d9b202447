# src/tasknote/core/chat.py

"""
Core chat orchestration.

This module is transport-agnostic:
- connectors provide inbound text + (user_id, room_id),
- the core routes it to a running flow, a slash command, or quick task creation,
- connectors decide how to display/send the replies (console, Matrix, etc.).

Routing order for one message:
1. plain text while a flow is running feeds the flow;
2. slash commands (/cancel clears the flow; commands that start a flow replace
   the running one; the rest leave it alone);
3. any other text becomes a medium-priority task.

One user's messages are handled strictly one at a time.
"""

from __future__ import annotations

import asyncio
import logging

from ..cli.commands import registry
from ..tasks.formatting import format_task
from .errors import TaskNoteError
from .ports import Reply
from .state import AppState

logger = logging.getLogger(__name__)

GENERIC_FAILURE = "❌ Internal error, please try again later."


async def _touch_session(state: AppState, user_id: str) -> None:
    try:
        await asyncio.to_thread(
            state.session_store.touch_session,
            user_id,
            now_ts=state.clock.now().timestamp(),
            ttl_seconds=float(state.settings.session_timeout_seconds),
        )
    except Exception:
        # A broken session table must not block task handling.
        logger.exception("touch_session failed user=%s", user_id)


async def _route(state: AppState, *, user_id: str, room_id: str | None, text: str) -> Reply | None:
    text = text.strip()
    if not text:
        return None

    if not registry.is_command(text):
        if state.engine.has_flow(user_id):
            return await state.engine.advance(user_id, text)

        task = await asyncio.to_thread(state.tasks.create_task, user_id, text, room_id=room_id)
        return Reply(f"✅ Task [{task.id}] created!\n{format_task(task)}")

    return await registry.handle(state, text, user_id, room_id)


async def handle_message(
    state: AppState,
    *,
    user_id: str,
    room_id: str | None,
    text: str,
) -> list[Reply]:
    """
    Main entrypoint for connectors.

    Returns the replies to send back to the same chat (usually one).
    Never raises for user-level or backend errors; they become reply text.
    """
    async with state.conversations.user_turn(user_id):
        await _touch_session(state, user_id)

        try:
            reply = await _route(state, user_id=user_id, room_id=room_id, text=text)
        except TaskNoteError as e:
            logger.info("Request rejected user=%s: %s", user_id, e.user_message)
            reply = Reply(f"❌ {e.user_message}")
        except Exception:
            logger.exception("handle_message failed user=%s room=%s", user_id, room_id)
            reply = Reply(GENERIC_FAILURE)

    return [reply] if reply is not None else []
