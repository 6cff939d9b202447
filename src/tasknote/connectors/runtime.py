# src/tasknote/connectors/runtime.py

"""
Background event loop for everything async.

The console REPL is blocking (input()), so the loop lives in its own thread:
- reminder scheduler and session sweeper always run there;
- the Matrix connector runs there when enabled;
- console messages are submitted to it with run_coroutine_threadsafe.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from dataclasses import dataclass

from ..core.ports import Choice, OutboundMessenger
from ..core.state import AppState
from ..tasks.task_scheduler import run_reminder_scheduler, run_session_sweeper
from .matrix_connector import MatrixMessenger, is_matrix_room, run_matrix_connector

logger = logging.getLogger(__name__)


class RoutingMessenger:
    """Sends to Matrix for Matrix room ids, to the local messenger otherwise."""

    def __init__(self, local: OutboundMessenger, matrix: MatrixMessenger | None = None) -> None:
        self._local = local
        self._matrix = matrix

    async def send_text(
        self,
        *,
        text: str,
        room_id: str | None = None,
        to_user_id: str | None = None,
        choices: tuple[Choice, ...] = (),
    ) -> None:
        if is_matrix_room(room_id):
            if self._matrix is None:
                raise RuntimeError(f"Matrix is disabled; cannot deliver to {room_id}")
            await self._matrix.send_text(text=text, room_id=room_id, to_user_id=to_user_id, choices=choices)
            return
        await self._local.send_text(text=text, room_id=room_id, to_user_id=to_user_id, choices=choices)


async def _run_services(
        state: AppState,
        local_messenger: OutboundMessenger,
        stop_event: asyncio.Event,
) -> None:
    settings = state.settings

    matrix: MatrixMessenger | None = MatrixMessenger() if settings.matrix_enabled else None
    messenger = RoutingMessenger(local_messenger, matrix)

    loops = [
        asyncio.create_task(
            run_reminder_scheduler(
                state.task_store,
                messenger,
                clock=state.clock,
                stop_event=stop_event,
                interval_seconds=settings.reminder_interval_seconds,
                batch_limit=settings.reminder_batch_limit,
            ),
            name="reminder-scheduler",
        ),
        asyncio.create_task(
            run_session_sweeper(
                state.session_store,
                clock=state.clock,
                stop_event=stop_event,
                interval_seconds=settings.session_sweep_interval_seconds,
            ),
            name="session-sweeper",
        ),
    ]

    matrix_task: asyncio.Task | None = None
    if matrix is not None:
        matrix_task = asyncio.create_task(run_matrix_connector(state, matrix, stop_event), name="matrix")

    await stop_event.wait()

    # Let the scheduler finish an in-flight send; the Matrix long-poll is just cancelled.
    await asyncio.gather(*loops, return_exceptions=True)
    if matrix_task is not None:
        matrix_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await matrix_task


@dataclass
class BackgroundRuntime:
    thread: threading.Thread
    loop: asyncio.AbstractEventLoop
    stop_event: asyncio.Event

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.stop_event.set)
        except RuntimeError:
            logger.debug("Runtime loop already closed.", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


def start_background_runtime(state: AppState, local_messenger: OutboundMessenger) -> BackgroundRuntime | None:
    """Start the loop thread and wait until it is ready to accept work."""
    ready = threading.Event()
    holder: dict[str, object] = {}

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        stop_event = asyncio.Event()

        holder["loop"] = loop
        holder["stop_event"] = stop_event
        ready.set()

        try:
            loop.run_until_complete(_run_services(state, local_messenger, stop_event))
        except Exception:
            logger.exception("Background runtime crashed.")
        finally:
            with contextlib.suppress(Exception):
                loop.run_until_complete(loop.shutdown_default_executor())
            loop.close()

    t = threading.Thread(target=runner, name="tasknote-runtime", daemon=True)
    t.start()

    ready.wait(timeout=5.0)
    loop = holder.get("loop")
    stop_event = holder.get("stop_event")

    if not isinstance(loop, asyncio.AbstractEventLoop) or not isinstance(stop_event, asyncio.Event):
        logger.error("Runtime thread did not initialize properly.")
        return None

    logger.info("Background runtime started.")
    return BackgroundRuntime(thread=t, loop=loop, stop_event=stop_event)
