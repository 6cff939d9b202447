# src/tasknote/tasks/task_scheduler.py

from __future__ import annotations

"""
Reminder scheduler.

Two small polling loops:
- reminders: fetch due tasks, send one message per task via an injected
  messenger port, then clear `notify_at` (act-then-mark);
- sessions: purge expired session rows.

A crash between send and clear produces a duplicate reminder on the next
cycle, never a lost one. Send failures leave the task untouched so it is
retried on the next cycle.
"""

import asyncio
import logging
from dataclasses import dataclass

from ..core.ports import Clock, OutboundMessenger, SessionRepo, TaskRepo
from .formatting import format_reminder, reminder_choices
from .task_models import Task

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class CycleReport:
    attempted: int = 0
    delivered: int = 0
    failed: int = 0


async def _dispatch(task: Task, messenger: OutboundMessenger) -> None:
    await messenger.send_text(
        text=format_reminder(task),
        room_id=task.room_id,
        to_user_id=task.user_id,
        choices=reminder_choices(task),
    )


async def run_reminder_cycle(
        task_store: TaskRepo,
        messenger: OutboundMessenger,
        *,
        clock: Clock,
        batch_limit: int = 100,
        stop_event: asyncio.Event | None = None,
) -> CycleReport:
    """One scan over due reminders; never raises for a single bad entry."""
    now_ts = clock.now().timestamp()

    try:
        due = await asyncio.to_thread(task_store.list_due_reminders, now_ts=now_ts, limit=int(batch_limit))
    except Exception:
        logger.exception("list_due_reminders failed; skipping tick")
        return CycleReport()

    attempted = delivered = failed = 0

    for i, task in enumerate(due):
        if stop_event is not None and stop_event.is_set():
            logger.info("Stop requested; leaving %d reminder(s) for later", len(due) - i)
            break

        if not task.reminder_due(now_ts):
            logger.warning("Skipping reminder that is not due task_id=%s notify_at=%s", task.id, task.notify_at)
            continue

        attempted += 1
        try:
            await _dispatch(task, messenger)
        except Exception:
            failed += 1
            logger.exception("Reminder send failed task_id=%s", task.id)
            continue

        try:
            cleared = await asyncio.to_thread(
                task_store.clear_notify_at,
                task.id,
                expected_notify_at=task.notify_at,
                now_ts=clock.now().timestamp(),
            )
        except Exception:
            # Sent but not marked: the next cycle will send it again.
            logger.exception("clear_notify_at failed task_id=%s", task.id)
            delivered += 1
            continue

        delivered += 1
        if cleared:
            logger.info("Reminder delivered task_id=%s", task.id)
        else:
            logger.info("Reminder delivered task_id=%s; reminder changed meanwhile, kept", task.id)

    report = CycleReport(attempted=attempted, delivered=delivered, failed=failed)
    if attempted:
        logger.info("Reminder cycle: attempted=%d delivered=%d failed=%d", attempted, delivered, failed)
    return report


async def _wait(stop_event: asyncio.Event, seconds: float) -> None:
    try:
        await asyncio.wait_for(stop_event.wait(), timeout=seconds)
    except asyncio.TimeoutError:
        pass


async def run_reminder_scheduler(
        task_store: TaskRepo,
        messenger: OutboundMessenger,
        *,
        clock: Clock,
        stop_event: asyncio.Event,
        interval_seconds: float = 60.0,
        batch_limit: int = 100,
) -> None:
    """
    Fixed-interval reminder loop.

    Every interval_seconds:
    - fetch pending tasks with notify_at <= now (oldest first)
    - send each one once
    - clear notify_at after a successful send

    Set stop_event to stop: an in-flight send completes, no new entry or cycle starts.
    """
    sleep_s = max(0.5, float(interval_seconds))
    logger.info("Reminder scheduler started (interval=%.1fs)", sleep_s)

    while not stop_event.is_set():
        await run_reminder_cycle(
            task_store,
            messenger,
            clock=clock,
            batch_limit=batch_limit,
            stop_event=stop_event,
        )
        await _wait(stop_event, sleep_s)

    logger.info("Reminder scheduler stopped")


async def run_session_sweeper(
        session_store: SessionRepo,
        *,
        clock: Clock,
        stop_event: asyncio.Event,
        interval_seconds: float = 1800.0,
) -> None:
    """Purge expired sessions every interval_seconds; failures are logged only."""
    sleep_s = max(0.5, float(interval_seconds))
    logger.info("Session sweeper started (interval=%.1fs)", sleep_s)

    while not stop_event.is_set():
        try:
            removed = await asyncio.to_thread(session_store.purge_expired, now_ts=clock.now().timestamp())
            if removed:
                logger.info("Purged %d expired session(s)", removed)
        except Exception:
            logger.exception("Session purge failed")
        await _wait(stop_event, sleep_s)

    logger.info("Session sweeper stopped")
