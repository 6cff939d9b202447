# src/tasknote/connectors/matrix_connector.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import time

from nio import AsyncClient, MatrixRoom, RoomMessageText, RoomSendResponse

from ..core.chat import handle_message
from ..core.ports import Choice, Reply
from ..core.state import AppState
from .console_connector import render_choices
from .matrix_client import create_matrix_client

logger = logging.getLogger(__name__)

_SYNC_TIMEOUT_MS = 30000


def _ms_now() -> int:
    return int(time.time() * 1000)


def _room_allowlist(settings_rooms: list[str]) -> set[str] | None:
    rooms = [r.strip() for r in (settings_rooms or []) if str(r).strip()]
    return set(rooms) if rooms else None


def is_matrix_room(room_id: str | None) -> bool:
    return bool(room_id) and str(room_id).startswith("!")


class MatrixMessenger:
    """
    OutboundMessenger over a nio AsyncClient.

    Matrix has no inline keyboards: choices are appended as text lines with the
    exact message to send. The client is attached once the connector is logged in.
    """

    def __init__(self, client: AsyncClient | None = None) -> None:
        self.client = client

    async def send_text(
        self,
        *,
        text: str,
        room_id: str | None = None,
        to_user_id: str | None = None,
        choices: tuple[Choice, ...] = (),
    ) -> None:
        if self.client is None:
            raise RuntimeError("Matrix client is not connected")
        if not is_matrix_room(room_id):
            raise ValueError(f"Not a Matrix room id: {room_id!r}")

        body = text
        if choices:
            body = f"{text}\n\nReply with:\n{render_choices(choices)}"

        resp = await self.client.room_send(
            room_id=str(room_id),
            message_type="m.room.message",
            content={"msgtype": "m.text", "body": body},
        )
        if not isinstance(resp, RoomSendResponse):
            raise RuntimeError(f"Matrix send failed: {resp!r}")


async def run_matrix_connector(
        state: AppState,
        messenger: MatrixMessenger,
        stop_event: asyncio.Event,
) -> None:
    """
    Matrix connector: login -> callbacks -> sync loop until stop_event is set.

    Only messages that arrive after startup are handled; own messages and rooms
    outside the allowlist are ignored.
    """
    settings = state.settings

    client = await create_matrix_client(settings)
    if client is None:
        logger.error("Matrix client creation failed; connector will stop.")
        return

    messenger.client = client
    startup_ts = _ms_now()
    allowed_rooms = _room_allowlist(settings.matrix_rooms)
    logger.info("Matrix connector ready (user=%s, rooms=%s).", client.user_id, allowed_rooms or "ALL")

    async def message_callback(room: MatrixRoom, event: RoomMessageText) -> None:
        ts = getattr(event, "server_timestamp", None)
        if ts is not None and ts <= startup_ts:
            return
        if event.sender == client.user_id:
            return
        if allowed_rooms is not None and room.room_id not in allowed_rooms:
            return

        body = (event.body or "").strip()
        if not body:
            return

        logger.info("Matrix <%s> %s: %r", room.display_name, event.sender, body)

        replies: list[Reply] = await handle_message(
            state, user_id=event.sender, room_id=room.room_id, text=body
        )
        for reply in replies:
            try:
                await messenger.send_text(text=reply.text, room_id=room.room_id, choices=reply.choices)
            except Exception:
                logger.exception("Failed to send reply to %s", room.room_id)

    client.add_event_callback(message_callback, RoomMessageText)

    try:
        await client.sync(timeout=_SYNC_TIMEOUT_MS, full_state=True)
        logger.info("Matrix initial sync done. Joined rooms: %d", len(client.rooms))

        while not stop_event.is_set():
            await client.sync(timeout=_SYNC_TIMEOUT_MS, full_state=False)
    except asyncio.CancelledError:
        logger.info("Matrix connector cancelled.")
        raise
    except Exception:
        logger.exception("Matrix connector crashed.")
    finally:
        messenger.client = None
        with contextlib.suppress(Exception):
            await client.close()
        logger.info("Matrix connector stopped.")
