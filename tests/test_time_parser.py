# tests/test_time_parser.py

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from tasknote.core.clock import SystemClock, local_zone
from tasknote.core.errors import UnrecognizedTimeFormat, ValidationError
from tasknote.dialog.time_parser import parse_time

NOW = datetime(2026, 3, 10, 12, 34, 56, 789, tzinfo=timezone.utc)


def test_clock_time_is_today() -> None:
    assert parse_time("15:30", NOW) == datetime(2026, 3, 10, 15, 30, tzinfo=timezone.utc)


def test_single_digit_hour_and_past_time_is_not_rolled_over() -> None:
    assert parse_time("9:05", NOW) == datetime(2026, 3, 10, 9, 5, tzinfo=timezone.utc)


def test_tomorrow() -> None:
    assert parse_time("tomorrow 10:00", NOW) == datetime(2026, 3, 11, 10, 0, tzinfo=timezone.utc)


def test_tomorrow_russian_keyword_and_case() -> None:
    assert parse_time("  Завтра   7:15 ", NOW) == datetime(2026, 3, 11, 7, 15, tzinfo=timezone.utc)
    assert parse_time("TOMORROW 23:59", NOW) == datetime(2026, 3, 11, 23, 59, tzinfo=timezone.utc)


def test_tomorrow_crosses_month_and_year() -> None:
    eoy = datetime(2026, 12, 31, 22, 0, tzinfo=timezone.utc)
    assert parse_time("tomorrow 08:00", eoy) == datetime(2027, 1, 1, 8, 0, tzinfo=timezone.utc)


def test_day_month_uses_current_year() -> None:
    assert parse_time("25.12 14:00", NOW) == datetime(2026, 12, 25, 14, 0, tzinfo=timezone.utc)
    assert parse_time("1.1 00:00", NOW) == datetime(2026, 1, 1, 0, 0, tzinfo=timezone.utc)


def test_result_keeps_timezone_and_zeroes_seconds() -> None:
    tz = timezone(timedelta(hours=3))
    now = datetime(2026, 3, 10, 12, 0, 41, tzinfo=tz)
    out = parse_time("15:30", now)
    assert out.tzinfo is tz
    assert (out.second, out.microsecond) == (0, 0)


def test_day_month_with_explicit_year() -> None:
    assert parse_time("25.12.2027 14:00", NOW) == datetime(2027, 12, 25, 14, 0, tzinfo=timezone.utc)

    with pytest.raises(UnrecognizedTimeFormat):
        parse_time("29.02.2027 10:00", NOW)


def test_date_in_winter_gets_winter_offset() -> None:
    berlin = ZoneInfo("Europe/Berlin")
    summer = datetime(2026, 7, 1, 12, 0, tzinfo=berlin)

    out = parse_time("25.12 14:00", summer)

    local = out.astimezone(berlin)
    assert (local.hour, local.minute) == (14, 0)
    assert out.utcoffset() == timedelta(hours=1)
    assert out.timestamp() == datetime(2026, 12, 25, 13, 0, tzinfo=timezone.utc).timestamp()


def test_tomorrow_across_dst_switch_keeps_wall_hour() -> None:
    berlin = ZoneInfo("Europe/Berlin")
    # Clocks go forward in the night of 28-29 March 2026.
    eve = datetime(2026, 3, 28, 20, 0, tzinfo=berlin)

    out = parse_time("tomorrow 10:00", eve)

    assert out.utcoffset() == timedelta(hours=2)
    assert out.timestamp() == datetime(2026, 3, 29, 8, 0, tzinfo=timezone.utc).timestamp()


@pytest.mark.parametrize("text", ["24:00", "12:60", "31.02 10:00", "10.13 10:00", "0.5 10:00"])
def test_out_of_range_values_are_rejected(text: str) -> None:
    with pytest.raises(UnrecognizedTimeFormat):
        parse_time(text, NOW)


@pytest.mark.parametrize("text", ["not-a-time", "", "10", "tomorrow", "15.30", "25.12", "in 5 minutes"])
def test_unrecognized_input(text: str) -> None:
    with pytest.raises(UnrecognizedTimeFormat) as exc:
        parse_time(text, NOW)
    assert isinstance(exc.value, ValidationError)
    assert "15:30" in exc.value.user_message


def test_system_clock_uses_iana_zone_from_tz(monkeypatch) -> None:
    monkeypatch.setenv("TZ", "Europe/Berlin")
    local_zone.cache_clear()
    try:
        now = SystemClock().now()
        assert now.tzinfo == ZoneInfo("Europe/Berlin")
        assert parse_time("25.12 14:00", now).utcoffset() == timedelta(hours=1)
    finally:
        local_zone.cache_clear()
