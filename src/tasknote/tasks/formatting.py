# src/tasknote/tasks/formatting.py

from __future__ import annotations

from datetime import datetime

from ..core.clock import local_zone
from ..core.ports import Choice
from .task_models import Note, NoteCategory, Task, TaskPriority, TaskStatus

_PRIORITY_ICONS = {
    TaskPriority.HIGH: "🔴",
    TaskPriority.MEDIUM: "🟡",
    TaskPriority.LOW: "🟢",
}

_CATEGORY_LABELS = {
    NoteCategory.GENERAL: "🗂️ General",
    NoteCategory.WORK: "💼 Work",
    NoteCategory.STUDY: "📚 Study",
    NoteCategory.PERSONAL: "👤 Personal",
    NoteCategory.RESOURCES: "🔗 Resources",
    NoteCategory.IDEAS: "💡 Ideas",
}

PRIORITY_CHOICES = tuple(
    Choice(label=f"{_PRIORITY_ICONS[p]} {p.value}", value=p.value) for p in TaskPriority
)
CATEGORY_CHOICES = tuple(Choice(label=_CATEGORY_LABELS[c], value=c.value) for c in NoteCategory)

_NOTE_PREVIEW_CHARS = 300


def format_ts(ts: float) -> str:
    return datetime.fromtimestamp(ts, local_zone()).strftime("%d.%m.%Y %H:%M")


def format_dt(dt: datetime) -> str:
    return dt.strftime("%d.%m.%Y %H:%M")


def format_task(task: Task) -> str:
    status = "✅ Completed" if task.status == TaskStatus.COMPLETED else "⏳ Pending"
    lines = [
        f"📋 Task [{task.id}]",
        "",
        f"📌 Title: {task.title}",
    ]
    if task.description:
        lines.append(f"💬 Description: {task.description}")
    lines.append(f"📊 Status: {status}")
    lines.append(f"🎯 Priority: {_PRIORITY_ICONS[task.priority]} {task.priority.value}")
    lines.append(f"📅 Created: {format_ts(task.created_at)}")
    if task.notify_at is not None:
        lines.append(f"⏰ Reminder: {format_ts(task.notify_at)}")
    if task.completed_at is not None:
        lines.append(f"✅ Completed: {format_ts(task.completed_at)}")
    return "\n".join(lines)


def format_task_list(tasks: list[Task], *, header: str = "📝 Your tasks:") -> str:
    if not tasks:
        return "📝 No tasks."

    lines = [header, ""]
    for t in tasks:
        mark = "✅" if t.status == TaskStatus.COMPLETED else "⏳"
        lines.append(f"{mark} {_PRIORITY_ICONS[t.priority]} [{t.id}] {t.title}")
        if t.description:
            lines.append(f"   💬 {t.description}")
        if t.notify_at is not None:
            lines.append(f"   ⏰ {format_ts(t.notify_at)}")
    return "\n".join(lines)


def format_reminder(task: Task) -> str:
    lines = ["⏰ Task reminder!", "", f"📌 {task.title}"]
    if task.description:
        lines.append(f"💬 {task.description}")
    lines.append("")
    lines.append(f"🆔 Task [{task.id}]")
    return "\n".join(lines)


def reminder_choices(task: Task) -> tuple[Choice, ...]:
    return (
        Choice(label="✅ Complete", value=f"/complete {task.id}"),
        Choice(label="📋 Details", value=f"/show {task.id}"),
    )


def format_note(note: Note) -> str:
    icon = "🔗" if note.is_link else "📝"
    lines = [f"{icon} {note.title} [{note.id}]"]
    if note.category != NoteCategory.GENERAL:
        lines.append(f"Category: {_CATEGORY_LABELS[note.category]}")
    if note.content:
        preview = note.content
        if len(preview) > _NOTE_PREVIEW_CHARS:
            preview = preview[:_NOTE_PREVIEW_CHARS] + "..."
        lines.append(preview)
    if note.is_link and note.url:
        lines.append(f"🔗 {note.url}")
    if note.tags:
        lines.append(f"🏷️ {note.tags}")
    if note.is_favorite:
        lines.append("⭐ Favorite")
    lines.append(f"📅 {format_ts(note.created_at)}")
    return "\n".join(lines)


def format_note_list(
    notes: list[Note], *, header: str = "📚 Your notes:", empty: str = "📝 No notes yet."
) -> str:
    if not notes:
        return empty
    lines = [header, ""]
    for n in notes:
        icon = "🔗" if n.is_link else "📝"
        star = " ⭐" if n.is_favorite else ""
        lines.append(f"{icon} [{n.id}] {n.title}{star}")
        if n.is_link and n.url:
            lines.append(f"   {n.url}")
    return "\n".join(lines)
