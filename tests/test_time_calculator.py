"""Tests for civil time arithmetic."""

from datetime import date, datetime

import pytest

from agenda.domain.scheduling.time_calculator import (
    add_frequency,
    add_minutes,
    current_week_bounds,
    date_of,
    day_window,
    local_time_of,
    normalize_time,
    time_grid,
    time_to_minutes,
    to_instant,
)


def test_to_instant_applies_fixed_offset() -> None:
    assert to_instant("2026-03-10", "09:00") == datetime(2026, 3, 10, 12, 0)


def test_late_evening_crosses_utc_midnight() -> None:
    instant = to_instant("2026-03-10", "22:30")
    assert instant == datetime(2026, 3, 11, 1, 30)
    assert date_of(instant) == date(2026, 3, 10)
    assert local_time_of(instant) == "22:30"


def test_day_window_covers_whole_civil_day() -> None:
    start, end = day_window("2026-03-10")
    assert start == datetime(2026, 3, 10, 3, 0)
    assert end == datetime(2026, 3, 11, 2, 59, 59)


@pytest.mark.parametrize(
    "raw, expected",
    [("9:5", "09:05"), ("09:05:00", "09:05"), ("23:30", "23:30")],
)
def test_normalize_time(raw: str, expected: str) -> None:
    assert normalize_time(raw) == expected


def test_add_minutes_wraps_within_day() -> None:
    assert add_minutes("23:30", 60) == "00:30"
    assert time_to_minutes("01:15") == 75


def test_add_frequency_steps() -> None:
    start = date(2026, 1, 5)
    assert add_frequency(start, "weekly") == date(2026, 1, 12)
    assert add_frequency(start, "biweekly") == date(2026, 1, 19)
    assert add_frequency(start, "monthly") == date(2026, 2, 5)


def test_monthly_clamps_to_month_end() -> None:
    assert add_frequency(date(2026, 1, 31), "monthly") == date(2026, 2, 28)


def test_current_week_bounds_monday_to_sunday() -> None:
    # Wednesday
    monday, sunday = current_week_bounds(date(2026, 3, 11))
    assert monday == date(2026, 3, 9)
    assert sunday == date(2026, 3, 15)


def test_time_grid_inclusive() -> None:
    grid = time_grid("08:00", "10:00", 30)
    assert grid == ["08:00", "08:30", "09:00", "09:30", "10:00"]
