"""Availability service - Overlap detection and free-time search"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ... import config
from ...exceptions import ConflictError, DayBlockedError
from ...models import Slot
from ..blocked_days.service import BlockedDayService
from .durations import duration_of, format_duration_label
from .repository import SlotRepository
from .statuses import (
    PROBE_OCCUPIED_STATUSES,
    EventType,
    SlotStatus,
    is_vacant_status,
)
from .time_calculator import (
    DateLike,
    day_window,
    local_time_of,
    minutes_between,
    time_grid,
    time_to_minutes,
    to_instant,
)

logger = logging.getLogger(__name__)

DAY_BLOCKED_MESSAGE = "Este dia está bloqueado. Não é possível criar novos agendamentos."

# Stored intervals longer than this are treated as bad data by probes
MAX_PROBE_DURATION_MINUTES = 240


@dataclass
class ProbeResult:
    has_conflict: bool
    reason: Optional[str] = None
    conflicting_slot: Optional[Slot] = None


@dataclass
class AvailableTime:
    time: str
    changed: bool


def is_occupied(slot: Slot) -> bool:
    """A slot is vacant only when it has no event type and a vacant status"""
    return bool(slot.event_type) or not is_vacant_status(slot.status)


def is_probe_occupied(slot: Slot) -> bool:
    return bool(slot.event_type) or slot.status in PROBE_OCCUPIED_STATUSES


def probe_reason(slot: Slot) -> str:
    if slot.status == SlotStatus.INDISPONIVEL.value:
        return "Horário indisponível"
    if slot.status == SlotStatus.CONFIRMADO.value:
        return "Horário confirmado"
    if slot.status == SlotStatus.RESERVADO.value:
        return "Horário reservado"
    if slot.status == SlotStatus.CONTRATADO.value:
        return "Horário contratado"
    if slot.event_type == EventType.PERSONAL.value:
        return "Atividade Pessoal"
    if slot.event_type:
        return slot.status or "Ocupado"
    return "Ocupado"


class AvailabilityService:
    """
    Decides whether a proposed interval is free.

    check_overlap is the strict check used before writes and raises;
    probe_overlap is the read-only variant used by previews and renewals.
    """

    def __init__(self, db: Session, blocked_days: Optional[BlockedDayService] = None):
        self.db = db
        self.repo = SlotRepository()
        self.blocked_days = blocked_days or BlockedDayService(db)

    def is_day_blocked(self, day: DateLike) -> bool:
        return self.blocked_days.is_blocked(day)

    def _day_slots(self, day: DateLike, exclude_slot_id: Optional[str]) -> list[Slot]:
        window_start, window_end = day_window(day)
        return self.repo.get_slots_in_range(self.db, window_start, window_end, exclude_slot_id)

    def check_overlap(
        self,
        day: DateLike,
        local_time: str,
        duration_minutes: int,
        exclude_slot_id: Optional[str] = None,
        include_siblings: bool = True,
    ) -> None:
        """
        Raise if [start, start + duration) intersects an occupied slot on the day.

        Raises:
            DayBlockedError: The day has a BlockedDay record
            ConflictError: An occupied slot intersects the interval

        include_siblings=False ignores slots starting at the exact same
        instant; updates use it so a slot is not blocked by its own stack.
        """
        if self.is_day_blocked(day):
            raise DayBlockedError(DAY_BLOCKED_MESSAGE)

        start = to_instant(day, local_time)
        end = start + timedelta(minutes=duration_minutes)

        for slot in self._day_slots(day, exclude_slot_id):
            if not is_occupied(slot):
                continue
            if not include_siblings and slot.start_time == start:
                continue

            slot_end = slot.start_time + timedelta(minutes=duration_of(slot))
            if not (start < slot_end and end > slot.start_time):
                continue

            slot_time = local_time_of(slot.start_time)
            logger.info(f"⚠️ Overlap at {day} {local_time}: slot {slot.id} ({slot_time}, {slot.status})")
            if slot.status == SlotStatus.INDISPONIVEL.value:
                raise ConflictError(
                    f"Conflito: Horário indisponível às {slot_time} bloqueia este horário."
                )
            raise ConflictError(
                f"Conflito: Um agendamento iniciado às {slot_time} tem duração de "
                f"{format_duration_label(duration_of(slot))} e bloqueia este horário."
            )

    def probe_overlap(
        self,
        day: DateLike,
        local_time: str,
        duration_minutes: int,
        exclude_slot_id: Optional[str] = None,
    ) -> ProbeResult:
        """Read-only overlap check that reports the first collision instead of raising"""
        start = to_instant(day, local_time)
        end = start + timedelta(minutes=duration_minutes)

        for slot in self._day_slots(day, exclude_slot_id):
            if not is_probe_occupied(slot):
                continue

            slot_minutes = duration_of(slot)
            stored = minutes_between(slot.start_time, slot.end_time) if slot.end_time else 0
            if 0 < stored <= MAX_PROBE_DURATION_MINUTES:
                slot_minutes = stored
            slot_end = slot.start_time + timedelta(minutes=slot_minutes)

            if start < slot_end and end > slot.start_time:
                return ProbeResult(True, probe_reason(slot), slot)

        return ProbeResult(False)

    def find_next_available_time(
        self, day: DateLike, local_time: str, duration_minutes: int
    ) -> Optional[AvailableTime]:
        """
        Find a free start time on the day, preferring the requested one.

        Scans the configured grid forward from the requested time, then
        backward. Returns None when the day is blocked or nothing is free.
        """
        if self.is_day_blocked(day):
            return None

        if not self.probe_overlap(day, local_time, duration_minutes).has_conflict:
            return AvailableTime(local_time, changed=False)

        grid = time_grid(
            config.RENEWAL_SEARCH_START, config.RENEWAL_SEARCH_END, config.RENEWAL_SEARCH_STEP
        )
        requested = time_to_minutes(local_time)
        after = [t for t in grid if time_to_minutes(t) > requested]
        before = [t for t in reversed(grid) if time_to_minutes(t) < requested]

        for candidate in after + before:
            if not self.probe_overlap(day, candidate, duration_minutes).has_conflict:
                logger.info(f"🔄 {day}: {local_time} taken, using {candidate}")
                return AvailableTime(candidate, changed=True)

        logger.warning(f"⚠️ No free time on {day} for {duration_minutes} minutes")
        return None
