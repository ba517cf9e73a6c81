"""
Time arithmetic for the practice calendar

All civil dates and times use a fixed UTC-3 offset with no daylight saving.
Instants are naive UTC datetimes, which is how they are stored in the database.
Local times of day are "HH:MM" strings.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Union

from dateutil.relativedelta import relativedelta

CIVIL_OFFSET = timedelta(hours=-3)
CIVIL_TZ = timezone(CIVIL_OFFSET, name="UTC-03:00")

MINUTES_PER_DAY = 24 * 60

DateLike = Union[date, str]


def parse_date(value: DateLike) -> date:
    """Accept a date or a YYYY-MM-DD string"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(value.strip()[:10], "%Y-%m-%d").date()


def format_date(value: date) -> str:
    return value.strftime("%Y-%m-%d")


def time_to_minutes(local_time: str) -> int:
    """Minutes since midnight for "HH:MM" (a trailing ":SS" is ignored)"""
    parts = local_time.strip().split(":")
    return int(parts[0]) * 60 + int(parts[1])


def minutes_to_time(minutes: int) -> str:
    hours, mins = divmod(minutes, 60)
    return f"{hours:02d}:{mins:02d}"


def normalize_time(local_time: str) -> str:
    """Canonical "HH:MM" form ("9:5" and "09:05:00" both become "09:05")"""
    return minutes_to_time(time_to_minutes(local_time))


def add_minutes(local_time: str, minutes: int) -> str:
    """Shift a local time, wrapping within the day"""
    return minutes_to_time((time_to_minutes(local_time) + minutes) % MINUTES_PER_DAY)


def to_instant(day: DateLike, local_time: str) -> datetime:
    """Combine a civil date and local time into a naive UTC instant"""
    local = datetime.combine(parse_date(day), datetime.min.time()) + timedelta(
        minutes=time_to_minutes(local_time)
    )
    return local - CIVIL_OFFSET


def to_local(instant: datetime) -> datetime:
    """Project a stored instant onto the civil clock (naive)"""
    if instant.tzinfo is not None:
        instant = instant.astimezone(timezone.utc).replace(tzinfo=None)
    return instant + CIVIL_OFFSET


def local_time_of(instant: datetime) -> str:
    return to_local(instant).strftime("%H:%M")


def date_of(instant: datetime) -> date:
    return to_local(instant).date()


def day_window(day: DateLike) -> tuple[datetime, datetime]:
    """[00:00:00, 23:59:59] of a civil day, as UTC instants"""
    start = to_instant(day, "00:00")
    return start, start + timedelta(hours=23, minutes=59, seconds=59)


def add_frequency(day: date, frequency: str, steps: int = 1) -> date:
    """Advance by weekly (7d), biweekly (14d) or monthly (calendar month) steps"""
    if frequency == "monthly":
        return day + relativedelta(months=steps)
    if frequency == "biweekly":
        return day + timedelta(weeks=2 * steps)
    # weekly and anything unrecognized
    return day + timedelta(weeks=steps)


def minutes_between(start: datetime, end: datetime) -> int:
    return round((end - start).total_seconds() / 60)


def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def today_local() -> date:
    return date_of(utc_now())


def current_week_bounds(today: date) -> tuple[date, date]:
    """Monday..Sunday of the week containing today"""
    monday = today - timedelta(days=today.weekday())
    return monday, monday + timedelta(days=6)


def time_grid(start: str, end: str, step_minutes: int = 30) -> list[str]:
    """Local times from start to end inclusive"""
    current = time_to_minutes(start)
    last = time_to_minutes(end)
    grid = []
    while current <= last:
        grid.append(minutes_to_time(current))
        current += step_minutes
    return grid
