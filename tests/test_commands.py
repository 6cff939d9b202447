# tests/test_commands.py

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from tasknote.cli.commands import CommandRegistry, registry
from tasknote.core.errors import NotFoundError
from tasknote.core.ports import Reply
from tasknote.core.state import AppState
from tasknote.dialog.conversation_store import FlowAction
from tasknote.tasks.task_models import TaskPriority, TaskStatus


@pytest.mark.asyncio
async def test_command_registry_routes_and_aliases(state: AppState) -> None:
    reg = CommandRegistry()
    seen: list[tuple[list[str], str, str | None]] = []

    async def echo(state, args, user_id, room_id):
        seen.append((args, user_id, room_id))
        return "echo"

    async def as_reply(state, args, user_id, room_id):
        return Reply("reply")

    reg.register("echo", echo, "echo", aliases=["e"])
    reg.register("r", as_reply, "r")

    assert await reg.handle(state, "/echo a b", "u", "room") == Reply("echo")
    assert await reg.handle(state, "/E@bot x", "u", None) == Reply("echo")
    assert await reg.handle(state, "/r", "u") == Reply("reply")
    assert seen == [(["a", "b"], "u", "room"), (["x"], "u", None)]


@pytest.mark.asyncio
async def test_command_registry_unknown_and_non_command(state: AppState) -> None:
    reg = CommandRegistry()
    assert await reg.handle(state, "hello", "u") is None

    unknown = await reg.handle(state, "/nope", "u")
    assert unknown is not None and "Unknown command" in unknown.text

    empty = await reg.handle(state, "/", "u")
    assert empty is not None and "Empty command" in empty.text


@pytest.mark.asyncio
async def test_command_registry_turns_app_errors_into_replies(state: AppState) -> None:
    reg = CommandRegistry()

    async def missing(state, args, user_id, room_id):
        raise NotFoundError("Task [9] not found.")

    reg.register("missing", missing, "m")
    reply = await reg.handle(state, "/missing", "u")
    assert reply == Reply("❌ Task [9] not found.")


@pytest.mark.asyncio
async def test_help_lists_commands(state: AppState) -> None:
    reply = await registry.handle(state, "/help", "u1")
    assert reply is not None
    for name in ("/tasks", "/add", "/notify", "/note", "/notes", "/cancel", "/logout"):
        assert name in reply.text


@pytest.mark.asyncio
async def test_add_with_title_creates_medium_task(state: AppState) -> None:
    reply = await registry.handle(state, "/add Water the plants", "u1", "console")
    assert reply is not None and "created" in reply.text

    (task,) = state.tasks.list_tasks("u1")
    assert task.title == "Water the plants"
    assert task.priority == TaskPriority.MEDIUM
    assert task.room_id == "console"


@pytest.mark.asyncio
async def test_add_without_title_starts_flow(state: AppState) -> None:
    await registry.handle(state, "/new", "u1")
    current = state.conversations.get("u1")
    assert current is not None and current.action == FlowAction.ADD_TASK


@pytest.mark.asyncio
async def test_task_lifecycle_commands(state: AppState) -> None:
    a = state.tasks.create_task("u1", "alpha")
    b = state.tasks.create_task("u1", "beta")

    done = await registry.handle(state, f"/done {a.id}", "u1")
    assert done is not None and "completed" in done.text

    pending = await registry.handle(state, "/pending", "u1")
    completed = await registry.handle(state, "/completed", "u1")
    assert pending is not None and "beta" in pending.text and "alpha" not in pending.text
    assert completed is not None and "alpha" in completed.text

    shown = await registry.handle(state, f"/show {b.id}", "u1")
    assert shown is not None and "beta" in shown.text

    deleted = await registry.handle(state, f"/del {b.id}", "u1")
    assert deleted is not None and "deleted" in deleted.text
    assert state.tasks.list_tasks("u1", TaskStatus.PENDING) == []

    listing = await registry.handle(state, "/tasks", "u1")
    assert listing is not None and "beta" not in listing.text


@pytest.mark.asyncio
async def test_id_commands_validate_arguments(state: AppState) -> None:
    for line in ("/show", "/complete abc", "/delete -1", "/nshow 0"):
        reply = await registry.handle(state, line, "u1")
        assert reply is not None and reply.text.startswith("Usage:"), line


@pytest.mark.asyncio
async def test_show_foreign_task_is_refused(state: AppState) -> None:
    task = state.tasks.create_task("owner", "private")
    reply = await registry.handle(state, f"/show {task.id}", "intruder")
    assert reply is not None and reply.text.startswith("❌")
    assert "private" not in reply.text


@pytest.mark.asyncio
async def test_notify_one_shot(state: AppState) -> None:
    task = state.tasks.create_task("u1", "dentist")
    reply = await registry.handle(state, f"/notify {task.id} tomorrow 9:30", "u1")

    assert reply is not None and "Reminder set" in reply.text
    stored = state.task_store.get_task(task.id)
    assert stored is not None
    assert stored.notify_at == datetime(2026, 3, 11, 9, 30, tzinfo=timezone.utc).timestamp()
    assert state.engine.has_flow("u1") is False


@pytest.mark.asyncio
async def test_notify_one_shot_bad_time_creates_no_state(state: AppState) -> None:
    task = state.tasks.create_task("u1", "dentist")
    reply = await registry.handle(state, f"/notify {task.id} someday", "u1")

    assert reply is not None and reply.text.startswith("❌")
    assert state.engine.has_flow("u1") is False
    stored = state.task_store.get_task(task.id)
    assert stored is not None and stored.notify_at is None


@pytest.mark.asyncio
async def test_notify_with_id_only_starts_at_time_step(state: AppState) -> None:
    task = state.tasks.create_task("u1", "dentist")
    await registry.handle(state, f"/notify {task.id}", "u1")

    current = state.conversations.get("u1")
    assert current is not None
    assert (current.action, current.step, current.target_id) == (FlowAction.SET_NOTIFICATION, 2, task.id)


@pytest.mark.asyncio
async def test_notify_with_unknown_id_does_not_start_flow(state: AppState) -> None:
    reply = await registry.handle(state, "/notify 404", "u1")
    assert reply is not None and "not found" in reply.text
    assert state.engine.has_flow("u1") is False


@pytest.mark.asyncio
async def test_notes_commands(state: AppState) -> None:
    empty = await registry.handle(state, "/notes", "u1")
    assert empty is not None and "No notes" in empty.text

    note = state.notes.create_note("u1", "Recipe", "flour, eggs")
    listing = await registry.handle(state, "/notes", "u1")
    assert listing is not None and "Recipe" in listing.text

    shown = await registry.handle(state, f"/nshow {note.id}", "u1")
    assert shown is not None and "flour, eggs" in shown.text

    await registry.handle(state, "/note Shopping list", "u1")
    current = state.conversations.get("u1")
    assert current is not None
    assert (current.action, current.step, current.scratch["title"]) == (FlowAction.ADD_NOTE, 2, "Shopping list")


@pytest.mark.asyncio
async def test_cancel_and_logout(state: AppState) -> None:
    nothing = await registry.handle(state, "/cancel", "u1")
    assert nothing is not None and "Nothing to cancel" in nothing.text

    state.engine.start_add_task("u1")
    cancelled = await registry.handle(state, "/cancel", "u1")
    assert cancelled is not None and "cancelled" in cancelled.text
    assert state.engine.has_flow("u1") is False

    state.session_store.touch_session("u1", now_ts=0.0, ttl_seconds=1e9)
    state.engine.start_add_note("u1")
    await registry.handle(state, "/logout", "u1")
    assert state.session_store.get_session("u1") is None
    assert state.engine.has_flow("u1") is False


@pytest.mark.asyncio
async def test_id_with_non_ascii_digit_gets_usage(state: AppState) -> None:
    for line in ("/show ²", "/nshow ²", "/ndelete ①"):
        reply = await registry.handle(state, line, "u1")
        assert reply is not None and reply.text.startswith("Usage:"), line


@pytest.mark.asyncio
async def test_favorite_commands(state: AppState) -> None:
    note = state.notes.create_note("u1", "Keeper")

    empty = await registry.handle(state, "/favorites", "u1")
    assert empty is not None and "No favorite notes" in empty.text

    added = await registry.handle(state, f"/favorite {note.id}", "u1")
    assert added is not None and "added to favorites" in added.text

    listing = await registry.handle(state, "/favorites", "u1")
    assert listing is not None and "Keeper ⭐" in listing.text

    shown = await registry.handle(state, f"/nshow {note.id}", "u1")
    assert shown is not None and "⭐ Favorite" in shown.text

    removed = await registry.handle(state, f"/favorite {note.id}", "u1")
    assert removed is not None and "removed from favorites" in removed.text

    foreign = await registry.handle(state, f"/favorite {note.id}", "u2")
    assert foreign is not None and foreign.text.startswith("❌")


@pytest.mark.asyncio
async def test_ndelete_search_and_links_commands(state: AppState) -> None:
    link = state.notes.create_note("u1", "Python docs", "https://docs.python.org")
    plain = state.notes.create_note("u1", "Shopping", "milk, bread")

    links = await registry.handle(state, "/links", "u1")
    assert links is not None
    assert "https://docs.python.org" in links.text and "Shopping" not in links.text

    found = await registry.handle(state, "/search MILK", "u1")
    assert found is not None and "Shopping" in found.text and "Python docs" not in found.text

    nothing = await registry.handle(state, "/search zebra", "u1")
    assert nothing is not None and "Nothing found" in nothing.text

    usage = await registry.handle(state, "/search", "u1")
    assert usage is not None and usage.text.startswith("Usage:")

    deleted = await registry.handle(state, f"/ndelete {plain.id}", "u1")
    assert deleted is not None and "deleted" in deleted.text
    assert [n.id for n in state.notes.list_notes("u1")] == [link.id]

    gone = await registry.handle(state, f"/nshow {plain.id}", "u1")
    assert gone is not None and "not found" in gone.text
