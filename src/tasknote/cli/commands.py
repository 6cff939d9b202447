# src/tasknote/cli/commands.py

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from ..core.errors import TaskNoteError, UnrecognizedTimeFormat
from ..core.ports import Reply
from ..core.state import AppState
from ..dialog.time_parser import parse_time
from ..tasks.formatting import format_dt, format_note, format_note_list, format_task, format_task_list
from ..tasks.task_models import TaskStatus

CommandResult = Reply | str
CommandHandler = Callable[[AppState, list[str], str, str | None], Awaitable[CommandResult]]

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Slash-command registry shared by all connectors (/help, /tasks, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def is_command(self, line: str) -> bool:
        return line.strip().startswith("/")

    async def handle(
        self,
        state: AppState,
        line: str,
        user_id: str,
        room_id: str | None = None,
    ) -> Reply | None:
        """
        Handle a string like "/command args".
        Returns a Reply, or None if the line is not a command.
        """
        line = line.strip()
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return Reply("Empty command. Use /help to list available commands.")

        # "/cmd@bot" style suffixes are ignored.
        name = parts[0].split("@", 1)[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return Reply(f"❓ Unknown command: /{name}. Use /help to list available commands.")

        try:
            result = await handler(state, args, user_id, room_id)
        except TaskNoteError as e:
            logger.info("/%s rejected user=%s: %s", name, user_id, e.user_message)
            return Reply(f"❌ {e.user_message}")

        return Reply(result) if isinstance(result, str) else result

    def build_help(self) -> str:
        lines = ["📖 Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        lines.append("")
        lines.append("💡 Any other text becomes a new task.")
        return "\n".join(lines)


registry = CommandRegistry()


def _parse_id(args: list[str]) -> int | None:
    if not args:
        return None
    raw = args[0].strip()
    if not raw.isdecimal() or int(raw) <= 0:
        return None
    return int(raw)


async def cmd_help(state: AppState, args: list[str], user_id: str, room_id: str | None) -> CommandResult:
    return registry.build_help()


async def _list(state: AppState, user_id: str, status: TaskStatus | None, header: str) -> str:
    tasks = await asyncio.to_thread(state.tasks.list_tasks, user_id, status)
    return format_task_list(tasks, header=header)


async def cmd_tasks(state: AppState, args: list[str], user_id: str, room_id: str | None) -> CommandResult:
    return await _list(state, user_id, None, "📝 Your tasks:")


async def cmd_pending(state: AppState, args: list[str], user_id: str, room_id: str | None) -> CommandResult:
    return await _list(state, user_id, TaskStatus.PENDING, "⏳ Pending tasks:")


async def cmd_completed(state: AppState, args: list[str], user_id: str, room_id: str | None) -> CommandResult:
    return await _list(state, user_id, TaskStatus.COMPLETED, "✅ Completed tasks:")


async def cmd_add(state: AppState, args: list[str], user_id: str, room_id: str | None) -> CommandResult:
    """
    /add          -> step-by-step task creation
    /add <title>  -> quick task with medium priority
    """
    if not args:
        return state.engine.start_add_task(user_id, room_id)

    title = " ".join(args)
    task = await asyncio.to_thread(state.tasks.create_task, user_id, title, room_id=room_id)
    return f"✅ Task [{task.id}] created!\n{format_task(task)}"


async def cmd_show(state: AppState, args: list[str], user_id: str, room_id: str | None) -> CommandResult:
    task_id = _parse_id(args)
    if task_id is None:
        return "Usage: /show ID"
    task = await asyncio.to_thread(state.tasks.get_owned_task, task_id, user_id)
    return format_task(task)


async def cmd_complete(state: AppState, args: list[str], user_id: str, room_id: str | None) -> CommandResult:
    task_id = _parse_id(args)
    if task_id is None:
        return "Usage: /complete ID"
    task = await asyncio.to_thread(state.tasks.complete_task, task_id, user_id)
    return f"✅ Task [{task.id}] completed: {task.title}"


async def cmd_delete(state: AppState, args: list[str], user_id: str, room_id: str | None) -> CommandResult:
    task_id = _parse_id(args)
    if task_id is None:
        return "Usage: /delete ID"
    await asyncio.to_thread(state.tasks.delete_task, task_id, user_id)
    return f"🗑️ Task [{task_id}] deleted."


async def cmd_notify(state: AppState, args: list[str], user_id: str, room_id: str | None) -> CommandResult:
    """
    /notify            -> step-by-step reminder setup
    /notify ID         -> asks only for the time
    /notify ID <time>  -> sets the reminder right away
    """
    if not args:
        return state.engine.start_set_notification(user_id, room_id)

    task_id = _parse_id(args)
    if task_id is None:
        return "❌ Invalid task ID.\nUsage: /notify ID time (e.g. /notify 3 tomorrow 10:00)"

    if len(args) == 1:
        # Check the task up front so the user is not asked for a time in vain.
        await asyncio.to_thread(state.tasks.get_owned_task, task_id, user_id)
        return state.engine.start_set_notification(user_id, room_id, task_id=task_id)

    try:
        notify_at = parse_time(" ".join(args[1:]), state.clock.now())
    except UnrecognizedTimeFormat as e:
        return f"❌ {e.user_message}"

    task = await asyncio.to_thread(state.tasks.set_notification, task_id, user_id, notify_at)
    return (
        "⏰ Reminder set!\n"
        f"📌 Task [{task.id}]: {task.title}\n"
        f"🕐 Time: {format_dt(notify_at)}"
    )


async def cmd_note(state: AppState, args: list[str], user_id: str, room_id: str | None) -> CommandResult:
    """
    /note          -> step-by-step note creation
    /note <title>  -> same, with the title already filled in
    """
    title = " ".join(args).strip() or None
    return state.engine.start_add_note(user_id, room_id, title=title)


async def cmd_notes(state: AppState, args: list[str], user_id: str, room_id: str | None) -> CommandResult:
    notes = await asyncio.to_thread(state.notes.list_notes, user_id)
    return format_note_list(notes)


async def cmd_nshow(state: AppState, args: list[str], user_id: str, room_id: str | None) -> CommandResult:
    note_id = _parse_id(args)
    if note_id is None:
        return "Usage: /nshow ID"
    note = await asyncio.to_thread(state.notes.get_owned_note, note_id, user_id)
    return format_note(note)


async def cmd_ndelete(state: AppState, args: list[str], user_id: str, room_id: str | None) -> CommandResult:
    note_id = _parse_id(args)
    if note_id is None:
        return "Usage: /ndelete ID"
    await asyncio.to_thread(state.notes.delete_note, note_id, user_id)
    return f"🗑️ Note [{note_id}] deleted."


async def cmd_favorite(state: AppState, args: list[str], user_id: str, room_id: str | None) -> CommandResult:
    note_id = _parse_id(args)
    if note_id is None:
        return "Usage: /favorite ID"
    note = await asyncio.to_thread(state.notes.toggle_favorite, note_id, user_id)
    if note.is_favorite:
        return f"⭐ Note [{note.id}] added to favorites."
    return f"☆ Note [{note.id}] removed from favorites."


async def cmd_favorites(state: AppState, args: list[str], user_id: str, room_id: str | None) -> CommandResult:
    notes = await asyncio.to_thread(state.notes.list_favorites, user_id)
    return format_note_list(
        notes,
        header="⭐ Favorite notes:",
        empty="⭐ No favorite notes yet.\n\nUse /favorite ID to add one.",
    )


async def cmd_search(state: AppState, args: list[str], user_id: str, room_id: str | None) -> CommandResult:
    query = " ".join(args).strip()
    if not query:
        return "Usage: /search text"
    notes = await asyncio.to_thread(state.notes.search_notes, user_id, query)
    return format_note_list(
        notes,
        header=f"🔍 Notes matching \"{query}\":",
        empty=f"🔍 Nothing found for \"{query}\".",
    )


async def cmd_links(state: AppState, args: list[str], user_id: str, room_id: str | None) -> CommandResult:
    notes = await asyncio.to_thread(state.notes.list_links, user_id)
    return format_note_list(notes, header="🔗 Saved links:", empty="🔗 No saved links yet.")


async def cmd_cancel(state: AppState, args: list[str], user_id: str, room_id: str | None) -> CommandResult:
    if state.engine.cancel(user_id):
        return "❌ Action cancelled."
    return "Nothing to cancel."


async def cmd_logout(state: AppState, args: list[str], user_id: str, room_id: str | None) -> CommandResult:
    state.engine.cancel(user_id)
    await asyncio.to_thread(state.session_store.delete_session, user_id)
    logger.info("Session closed user=%s", user_id)
    return "👋 Session closed. Send any message to start a new one."


registry.register("help", cmd_help, help_text="Show this help.", aliases=["h", "?", "start"])
registry.register("tasks", cmd_tasks, help_text="List all tasks.", aliases=["list"])
registry.register("pending", cmd_pending, help_text="List pending tasks.")
registry.register("completed", cmd_completed, help_text="List completed tasks.")
registry.register("add", cmd_add, help_text="Create a task: /add | /add title.", aliases=["new"])
registry.register("show", cmd_show, help_text="Show task details: /show ID.", aliases=["get"])
registry.register("complete", cmd_complete, help_text="Mark a task done: /complete ID.", aliases=["done"])
registry.register("delete", cmd_delete, help_text="Delete a task: /delete ID.", aliases=["del"])
registry.register(
    "notify",
    cmd_notify,
    help_text="Set a reminder: /notify ID time (15:30 | tomorrow 10:00 | 25.12 14:00).",
)
registry.register("note", cmd_note, help_text="Create a note: /note | /note title.")
registry.register("notes", cmd_notes, help_text="List notes.")
registry.register("nshow", cmd_nshow, help_text="Show a note: /nshow ID.")
registry.register("ndelete", cmd_ndelete, help_text="Delete a note: /ndelete ID.")
registry.register("favorite", cmd_favorite, help_text="Toggle a favorite note: /favorite ID.")
registry.register("favorites", cmd_favorites, help_text="List favorite notes.")
registry.register("search", cmd_search, help_text="Search notes: /search text.")
registry.register("links", cmd_links, help_text="List notes that are links.")
registry.register("cancel", cmd_cancel, help_text="Cancel the current step-by-step action.")
registry.register("logout", cmd_logout, help_text="Close your session.")
