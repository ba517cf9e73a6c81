"""Slot duration, duration labels and list prices"""

from datetime import datetime
from typing import Optional

from .statuses import EventType, normalize_event_type
from .time_calculator import minutes_between

COMMERCIAL_DURATION_MINUTES = 60
DEFAULT_PERSONAL_DURATION_MINUTES = 30

# Duration categories accepted for personal activities
DURATION_CATEGORIES = {
    "2h": 120,
    "120m": 120,
    "1h30": 90,
    "90m": 90,
    "1h": 60,
    "60m": 60,
    "30m": 30,
}

# Prices in cents (BRL)
PRICE_TABLE = {
    EventType.ONLINE.value: {"padrao": 15000, "promocional": 8000, "emergencial": 20000},
    EventType.PRESENTIAL.value: {"padrao": 20000, "promocional": 10000, "emergencial": 25000},
}

DEFAULT_ACTIVITY_LABEL = "Atividade Pessoal"


def duration_for_category(category: Optional[str]) -> Optional[int]:
    if not category:
        return None
    return DURATION_CATEGORIES.get(category.strip().lstrip("#").lower())


def resolve_duration(
    event_type: Optional[str],
    category: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> int:
    """
    Slot length in minutes

    Commercial bookings (anything that is not a personal activity) are
    always one hour. Personal activities use their stored interval when
    there is one, then the duration category, then 30 minutes.
    """
    if normalize_event_type(event_type) != EventType.PERSONAL.value:
        return COMMERCIAL_DURATION_MINUTES

    if start is not None and end is not None:
        minutes = minutes_between(start, end)
        if minutes > 0:
            return minutes

    return duration_for_category(category) or DEFAULT_PERSONAL_DURATION_MINUTES


def duration_of(slot) -> int:
    """Resolved duration of a stored slot"""
    return resolve_duration(slot.event_type, slot.price_category, slot.start_time, slot.end_time)


def renewal_duration_of(slot) -> int:
    """Duration copied onto renewed sessions: the stored interval when it is 30..120 minutes, else one hour"""
    if slot.start_time is not None and slot.end_time is not None:
        minutes = minutes_between(slot.start_time, slot.end_time)
        if 30 <= minutes <= 120:
            return minutes
    return COMMERCIAL_DURATION_MINUTES


def format_duration_label(minutes: int) -> str:
    """90 -> "1h30m", 60 -> "1h", 30 -> "30m" """
    hours, mins = divmod(minutes, 60)
    if hours and mins:
        return f"{hours}h{mins}m"
    if hours:
        return f"{hours}h"
    return f"{mins}m"


def strip_duration_tag(label: Optional[str]) -> str:
    """Activity label without a legacy "#1h"-style duration suffix"""
    if not label:
        return DEFAULT_ACTIVITY_LABEL
    base = label.split("#", 1)[0].strip()
    return base or DEFAULT_ACTIVITY_LABEL


def calculate_price(event_type: Optional[str], category: Optional[str]) -> Optional[int]:
    event_type = normalize_event_type(event_type)
    if event_type == EventType.PERSONAL.value or not category:
        return None
    return PRICE_TABLE.get(event_type, {}).get(category)
