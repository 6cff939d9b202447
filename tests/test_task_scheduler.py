# tests/test_task_scheduler.py

from __future__ import annotations

import asyncio
from dataclasses import replace

import pytest

from tasknote.tasks.task_models import Task, TaskPriority, TaskStatus
from tasknote.tasks.task_scheduler import run_reminder_cycle, run_reminder_scheduler
from tasknote.tasks.task_store import TaskStore

from .conftest import NOW
from .fakes import FakeMessenger, FixedClock


class FakeTaskRepo:
    """
    In-memory TaskRepo used for scheduler unit tests.

    This avoids SQLite and makes tests purely about scheduling logic:
    time gating, ordering, clearing and messenger calls.
    """

    def __init__(self, tasks: list[Task]) -> None:
        self.tasks = {t.id: t for t in tasks}
        self.fail_list = False
        self.fail_clear = False
        self.clear_calls: list[int] = []

    def list_due_reminders(self, *, now_ts: float, limit: int = 100) -> list[Task]:
        if self.fail_list:
            raise RuntimeError("db down")
        due = [t for t in self.tasks.values() if t.reminder_due(now_ts)]
        due.sort(key=lambda t: (t.notify_at, t.id))
        return due[:limit]

    def clear_notify_at(self, task_id: int, *, expected_notify_at=None, now_ts=None) -> bool:
        self.clear_calls.append(task_id)
        if self.fail_clear:
            raise RuntimeError("db down")
        t = self.tasks[task_id]
        if expected_notify_at is not None and t.notify_at != expected_notify_at:
            return False
        self.tasks[task_id] = replace(t, notify_at=None)
        return True


def _task(task_id: int, *, notify_at: float | None, status: TaskStatus = TaskStatus.PENDING) -> Task:
    now = NOW.timestamp()
    return Task(
        id=task_id,
        user_id="u1",
        room_id="!room:hs",
        title=f"task {task_id}",
        description="details" if task_id % 2 else "",
        status=status,
        priority=TaskPriority.MEDIUM,
        created_at=now - 100,
        updated_at=now - 100,
        notify_at=notify_at,
    )


@pytest.mark.asyncio
async def test_cycle_dispatches_due_task_and_clears_it() -> None:
    now = NOW.timestamp()
    repo = FakeTaskRepo([_task(1, notify_at=now - 1)])
    messenger = FakeMessenger()

    report = await run_reminder_cycle(repo, messenger, clock=FixedClock(NOW))

    assert (report.attempted, report.delivered, report.failed) == (1, 1, 0)
    (msg,) = messenger.sent
    assert "Task reminder" in msg.text
    assert "task 1" in msg.text
    assert "details" in msg.text
    assert "[1]" in msg.text
    assert msg.room_id == "!room:hs"
    assert msg.to_user_id == "u1"
    assert [c.value for c in msg.choices] == ["/complete 1", "/show 1"]
    assert repo.tasks[1].notify_at is None


class UnfilteredTaskRepo(FakeTaskRepo):
    """Returns every task regardless of due time or status."""

    def list_due_reminders(self, *, now_ts: float, limit: int = 100) -> list[Task]:
        return list(self.tasks.values())[:limit]


@pytest.mark.asyncio
async def test_cycle_skips_entries_that_are_not_due() -> None:
    now = NOW.timestamp()
    repo = UnfilteredTaskRepo(
        [
            _task(1, notify_at=now - 1),
            _task(2, notify_at=now + 3600),
            _task(3, notify_at=now - 5, status=TaskStatus.COMPLETED),
            _task(4, notify_at=None),
        ]
    )
    messenger = FakeMessenger()

    report = await run_reminder_cycle(repo, messenger, clock=FixedClock(NOW))

    assert (report.attempted, report.delivered, report.failed) == (1, 1, 0)
    (msg,) = messenger.sent
    assert "task 1" in msg.text
    assert repo.clear_calls == [1]
    assert repo.tasks[2].notify_at == now + 3600


@pytest.mark.asyncio
async def test_second_cycle_does_not_redispatch() -> None:
    now = NOW.timestamp()
    repo = FakeTaskRepo([_task(1, notify_at=now - 1)])
    messenger = FakeMessenger()
    clock = FixedClock(NOW)

    await run_reminder_cycle(repo, messenger, clock=clock)
    report = await run_reminder_cycle(repo, messenger, clock=clock)

    assert report.attempted == 0
    assert len(messenger.sent) == 1


@pytest.mark.asyncio
async def test_cycle_skips_future_inactive_and_unset() -> None:
    now = NOW.timestamp()
    repo = FakeTaskRepo(
        [
            _task(1, notify_at=now + 60),
            _task(2, notify_at=now - 60, status=TaskStatus.COMPLETED),
            _task(3, notify_at=now - 60, status=TaskStatus.DELETED),
            _task(4, notify_at=None),
        ]
    )
    messenger = FakeMessenger()

    report = await run_reminder_cycle(repo, messenger, clock=FixedClock(NOW))

    assert report.attempted == 0
    assert messenger.sent == []


@pytest.mark.asyncio
async def test_cycle_dispatches_oldest_first() -> None:
    now = NOW.timestamp()
    repo = FakeTaskRepo([_task(3, notify_at=now - 5), _task(1, notify_at=now - 50), _task(2, notify_at=now - 5)])
    messenger = FakeMessenger()

    await run_reminder_cycle(repo, messenger, clock=FixedClock(NOW))

    assert [m.text.splitlines()[2] for m in messenger.sent] == ["📌 task 1", "📌 task 2", "📌 task 3"]


@pytest.mark.asyncio
async def test_failed_send_keeps_reminder_and_other_entries_proceed() -> None:
    now = NOW.timestamp()
    repo = FakeTaskRepo([_task(1, notify_at=now - 10), _task(2, notify_at=now - 5)])
    messenger = FakeMessenger(fail_for=("task 1",))
    clock = FixedClock(NOW)

    report = await run_reminder_cycle(repo, messenger, clock=clock)

    assert (report.attempted, report.delivered, report.failed) == (2, 1, 1)
    assert repo.tasks[1].notify_at == now - 10
    assert repo.tasks[2].notify_at is None
    assert repo.clear_calls == [2]

    # Transport is back: the failed entry is retried on the next cycle.
    messenger.fail_for = ()
    report = await run_reminder_cycle(repo, messenger, clock=clock)
    assert (report.attempted, report.delivered) == (1, 1)
    assert repo.tasks[1].notify_at is None


@pytest.mark.asyncio
async def test_fetch_failure_skips_tick() -> None:
    repo = FakeTaskRepo([_task(1, notify_at=NOW.timestamp() - 1)])
    repo.fail_list = True
    messenger = FakeMessenger()

    report = await run_reminder_cycle(repo, messenger, clock=FixedClock(NOW))

    assert report.attempted == 0
    assert messenger.attempts == 0


@pytest.mark.asyncio
async def test_clear_failure_means_duplicate_not_loss() -> None:
    now = NOW.timestamp()
    repo = FakeTaskRepo([_task(1, notify_at=now - 1)])
    repo.fail_clear = True
    messenger = FakeMessenger()
    clock = FixedClock(NOW)

    report = await run_reminder_cycle(repo, messenger, clock=clock)
    assert report.delivered == 1
    assert repo.tasks[1].notify_at == now - 1

    repo.fail_clear = False
    await run_reminder_cycle(repo, messenger, clock=clock)
    assert len(messenger.sent) == 2
    assert repo.tasks[1].notify_at is None


@pytest.mark.asyncio
async def test_reminder_rescheduled_during_send_survives() -> None:
    now = NOW.timestamp()
    repo = FakeTaskRepo([_task(1, notify_at=now - 1)])

    class ReschedulingMessenger(FakeMessenger):
        async def send_text(self, **kwargs) -> None:
            await FakeMessenger.send_text(self, **kwargs)
            repo.tasks[1] = replace(repo.tasks[1], notify_at=now + 3600)

    await run_reminder_cycle(repo, ReschedulingMessenger(), clock=FixedClock(NOW))

    assert repo.tasks[1].notify_at == now + 3600


@pytest.mark.asyncio
async def test_stop_event_prevents_next_entry() -> None:
    now = NOW.timestamp()
    repo = FakeTaskRepo([_task(1, notify_at=now - 2), _task(2, notify_at=now - 1)])
    stop = asyncio.Event()

    class StoppingMessenger(FakeMessenger):
        async def send_text(self, **kwargs) -> None:
            await FakeMessenger.send_text(self, **kwargs)
            stop.set()

    messenger = StoppingMessenger()
    report = await run_reminder_cycle(repo, messenger, clock=FixedClock(NOW), stop_event=stop)

    # The in-flight send completes and is marked; the next entry is left for later.
    assert report.attempted == 1
    assert repo.tasks[1].notify_at is None
    assert repo.tasks[2].notify_at == now - 1


@pytest.mark.asyncio
async def test_scheduler_loop_runs_until_stopped(task_store: TaskStore) -> None:
    now = NOW.timestamp()
    tid = task_store.add_task(user_id="u1", title="Pay rent", room_id="console", notify_at=now - 30)
    task_store.add_task(user_id="u1", title="Later", notify_at=now + 3600)

    messenger = FakeMessenger()
    stop = asyncio.Event()
    loop_task = asyncio.create_task(
        run_reminder_scheduler(task_store, messenger, clock=FixedClock(NOW), stop_event=stop, interval_seconds=0.5)
    )

    for _ in range(200):
        if messenger.sent:
            break
        await asyncio.sleep(0.01)

    stop.set()
    await asyncio.wait_for(loop_task, timeout=2.0)

    assert len(messenger.sent) == 1
    assert "Pay rent" in messenger.sent[0].text
    stored = task_store.get_task(tid)
    assert stored is not None and stored.notify_at is None


@pytest.mark.asyncio
async def test_scheduler_does_not_start_when_already_stopped() -> None:
    repo = FakeTaskRepo([_task(1, notify_at=NOW.timestamp() - 1)])
    messenger = FakeMessenger()
    stop = asyncio.Event()
    stop.set()

    await asyncio.wait_for(
        run_reminder_scheduler(repo, messenger, clock=FixedClock(NOW), stop_event=stop), timeout=1.0
    )

    assert messenger.attempts == 0
