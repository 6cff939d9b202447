# tests/conftest.py

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from types import SimpleNamespace

import pytest

from tasknote.cli.bootstrap import create_initial_state
from tasknote.core.state import AppState
from tasknote.tasks.note_store import NoteStore
from tasknote.tasks.session_store import SessionStore
from tasknote.tasks.task_store import TaskStore

from .fakes import FixedClock

# Tuesday, mid-day: "today", "tomorrow" and "25.12" all resolve unambiguously.
NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and bootstrap.

    A SimpleNamespace rather than the real config keeps tests away from the
    process environment and .env files.
    """
    return SimpleNamespace(
        app_name="tasknote-test",
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "tasknote.sqlite3",
        matrix_store_path=tmp_path / "matrix_store",
        matrix_enabled=False,
        matrix_rooms=[],
        reminder_interval_seconds=60.0,
        reminder_batch_limit=100,
        session_sweep_interval_seconds=1800.0,
        session_timeout_seconds=3600.0,
    )


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture()
def state(settings: SimpleNamespace, clock: FixedClock) -> AppState:
    """
    AppState wired through the real composition root.

    Real SQLite stores are used on purpose: their behaviour is part of what we test.
    """
    return create_initial_state(settings=settings, clock=clock)


@pytest.fixture()
def task_store(tmp_path: Path) -> TaskStore:
    return TaskStore(tmp_path / "tasks.sqlite3")


@pytest.fixture()
def note_store(tmp_path: Path) -> NoteStore:
    return NoteStore(tmp_path / "tasks.sqlite3")


@pytest.fixture()
def session_store(tmp_path: Path) -> SessionStore:
    return SessionStore(tmp_path / "tasks.sqlite3")
