# src/tasknote/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
import sys
import threading
from datetime import datetime

from ..core.chat import handle_message
from ..core.ports import Choice, Reply
from ..core.state import AppState

logger = logging.getLogger(__name__)

CONSOLE_USER_ID = "console"
CONSOLE_ROOM_ID = "console"

# Replies can take a while only if SQLite is locked for long; never block forever.
_REPLY_TIMEOUT_S = 60.0


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _rewrite_prev_line(line: str) -> None:
    """
    Replace the last terminal line with `line`.
    Best-effort: if not a TTY, just print a new line.
    """
    if sys.stdout.isatty():
        sys.stdout.write("\033[1A\033[2K\r")
        sys.stdout.write(line + "\n")
        sys.stdout.flush()
    else:
        print(line)


def render_choices(choices: tuple[Choice, ...]) -> str:
    """Quick replies as text lines: `  high    - 🔴 high`."""
    if not choices:
        return ""
    width = max(len(c.value) for c in choices)
    return "\n".join(f"  {c.value.ljust(width)}  - {c.label}" for c in choices)


def render_reply(reply: Reply) -> str:
    text = reply.text
    if reply.choices:
        text = f"{text}\n{render_choices(reply.choices)}"
    return text


class ConsoleMessenger:
    """OutboundMessenger that prints to stdout (reminders for the console user)."""

    def __init__(self) -> None:
        self._lock = threading.Lock()

    async def send_text(
        self,
        *,
        text: str,
        room_id: str | None = None,
        to_user_id: str | None = None,
        choices: tuple[Choice, ...] = (),
    ) -> None:
        body = render_reply(Reply(text=text, choices=choices))
        with self._lock:
            print(f"\n[{_ts_local()}] {body}\n", flush=True)


def run_console_loop(state: AppState, loop: asyncio.AbstractEventLoop) -> None:
    """
    Blocking REPL in the calling thread.

    Each line is handled on `loop` (the background runtime loop), so console
    messages share the per-user locks and stores with the other connectors.
    """
    logger.info("Console connector started.")
    print(f"[{_ts_local()}] [CONSOLE] Type a task, or /help for commands. Use /exit to quit.\n")

    while True:
        try:
            user_input = input(">>> You: ").strip()
            _rewrite_prev_line(f"[{_ts_local()}] >>> You: {user_input}")
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        fut = asyncio.run_coroutine_threadsafe(
            handle_message(state, user_id=CONSOLE_USER_ID, room_id=CONSOLE_ROOM_ID, text=user_input),
            loop,
        )
        try:
            replies = fut.result(timeout=_REPLY_TIMEOUT_S)
        except Exception:
            logger.exception("Console message handling failed.")
            print(f"[{_ts_local()}] Internal error while handling the message.")
            continue

        for reply in replies:
            print(f"[{_ts_local()}] {render_reply(reply)}\n")

    logger.info("Console connector finished.")
