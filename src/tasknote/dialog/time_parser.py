# src/tasknote/dialog/time_parser.py

"""
Natural-language time expressions -> absolute timestamps.

Supported forms (first match wins):
- "15:30"            today at 15:30 (past times are returned as-is)
- "tomorrow 10:00"   next calendar day at 10:00
- "25.12 14:00"      25 December of the current year at 14:00
- "25.12.2027 14:00" 25 December 2027 at 14:00

The wall time is localized in the zone of `now`, so a ZoneInfo-backed `now`
yields the UTC offset in force on the target date. The parser is pure: no state, safe to
call from any task or thread.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from datetime import date, datetime, timedelta

from ..core.errors import UnrecognizedTimeFormat

TOMORROW_WORDS = ("tomorrow", "завтра")

_TODAY_RE = re.compile(r"^(\d{1,2}):(\d{2})$")
_TOMORROW_RE = re.compile(rf"^(?:{'|'.join(TOMORROW_WORDS)})\s+(\d{{1,2}}):(\d{{2}})$")
_DATE_RE = re.compile(r"^(\d{1,2})\.(\d{1,2})(?:\.(\d{4}))?\s+(\d{1,2}):(\d{2})$")


def _at(
    now: datetime,
    *,
    hour: int,
    minute: int,
    on: date | None = None,
    year: int | None = None,
    month: int | None = None,
    dom: int | None = None,
) -> datetime:
    base = on or now.date()
    try:
        # Built from wall-clock fields so the zone picks the offset for that date.
        return datetime(
            year if year is not None else base.year,
            month if month is not None else base.month,
            dom if dom is not None else base.day,
            hour,
            minute,
            tzinfo=now.tzinfo,
        )
    except ValueError as e:
        # datetime rejects hour=24, minute=60, 31.02 and friends.
        raise UnrecognizedTimeFormat(f"Time is out of range: {e}.") from e


def _today(m: re.Match[str], now: datetime) -> datetime:
    return _at(now, hour=int(m.group(1)), minute=int(m.group(2)))


def _tomorrow(m: re.Match[str], now: datetime) -> datetime:
    return _at(now, on=now.date() + timedelta(days=1), hour=int(m.group(1)), minute=int(m.group(2)))


def _day_month(m: re.Match[str], now: datetime) -> datetime:
    return _at(
        now,
        dom=int(m.group(1)),
        month=int(m.group(2)),
        year=int(m.group(3)) if m.group(3) else None,
        hour=int(m.group(4)),
        minute=int(m.group(5)),
    )


_PATTERNS: tuple[tuple[re.Pattern[str], Callable[[re.Match[str], datetime], datetime]], ...] = (
    (_TODAY_RE, _today),
    (_TOMORROW_RE, _tomorrow),
    (_DATE_RE, _day_month),
)


def parse_time(text: str, now: datetime) -> datetime:
    """
    Resolve `text` against `now`.

    Raises UnrecognizedTimeFormat when no pattern matches or the matched values
    do not form a valid date/time.
    """
    normalized = " ".join((text or "").strip().lower().split())
    for regex, build in _PATTERNS:
        m = regex.match(normalized)
        if m:
            return build(m, now)
    raise UnrecognizedTimeFormat(
        "Unsupported time format. Examples: 15:30, tomorrow 10:00, 25.12 14:00."
    )
