"""Recurrence service - Recurring series preview and creation"""

import logging
from datetime import date, timedelta
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from ...exceptions import NotFoundError, SchedulingError, ValidationError
from ...models import Contract, Slot
from ...shared.persistence import lock_day
from ..contracts.repository import ContractRepository
from ..patients.service import PatientService
from .availability_service import AvailabilityService
from .durations import duration_of
from .exclusivity import ExclusivityEngine
from .repository import SlotRepository
from .schemas import RecurringCreateRequest, RemindersInput
from .statuses import SlotStatus, is_vacant_status
from .time_calculator import (
    add_frequency,
    date_of,
    format_date,
    local_time_of,
    normalize_time,
    parse_date,
    to_instant,
)

logger = logging.getLogger(__name__)

BLOCKED_DAY_REASON = "Dia bloqueado"


def recurrence_dates(
    start: date, frequency: str, count: int, skip_dates: Iterable[str] = ()
) -> list[date]:
    """
    The first `count` dates of the series starting at `start`.

    Skipped dates do not consume an occurrence; the series keeps stepping
    from them as usual.
    """
    skipped = {format_date(parse_date(d)) for d in skip_dates}
    dates = []
    current = start
    while len(dates) < count:
        if format_date(current) not in skipped:
            dates.append(current)
        current = add_frequency(current, frequency)
    return dates


class RecurrenceService:
    """Expands an original slot into a recurring contract"""

    def __init__(
        self,
        db: Session,
        availability: Optional[AvailabilityService] = None,
        exclusivity: Optional[ExclusivityEngine] = None,
        patients: Optional[PatientService] = None,
    ):
        self.db = db
        self.repo = SlotRepository()
        self.contracts = ContractRepository()
        self.availability = availability or AvailabilityService(db)
        self.exclusivity = exclusivity or ExclusivityEngine(db)
        self.patients = patients or PatientService(db)

    def _get_original_slot(self, slot_id: str) -> Slot:
        slot = self.repo.get_slot(self.db, slot_id)
        if not slot:
            raise NotFoundError("Slot original não encontrado")
        return slot

    def preview_recurring(
        self,
        original_slot_id: str,
        frequency: str,
        occurrence_count: int,
        skip_dates: Iterable[str] = (),
    ) -> dict:
        """Per-date availability of a prospective series; writes nothing"""
        original = self._get_original_slot(original_slot_id)

        has_previous = False
        if original.patient_id:
            has_previous = self.repo.patient_has_contract_slots(self.db, original.patient_id)

        origin_day = date_of(original.start_time)
        local_time = local_time_of(original.start_time)
        duration = duration_of(original)

        preview = []
        for day in recurrence_dates(origin_day, frequency, occurrence_count, skip_dates):
            entry = {"date": format_date(day)}
            if self.availability.is_day_blocked(day):
                entry.update(status="occupied", details=BLOCKED_DAY_REASON)
            else:
                exclude = original.id if day == origin_day else None
                probe = self.availability.probe_overlap(day, local_time, duration, exclude)
                if probe.has_conflict:
                    entry.update(status="occupied", details=probe.reason or "Horário ocupado")
                else:
                    entry.update(status="available")
            preview.append(entry)

        logger.info(
            f"📅 Recurrence preview for slot {original.id}: "
            f"{sum(1 for p in preview if p['status'] == 'available')}/{len(preview)} available"
        )
        return {"preview": preview, "hasPreviousContracts": has_previous}

    def _target_slots(self, original: Slot, data: RecurringCreateRequest) -> list[tuple[str, str]]:
        """(date, time) pairs to book: explicit slots, then dates, then frequency stepping"""
        if data.slots:
            return [(item.date, item.time) for item in data.slots]

        original_time = local_time_of(original.start_time)
        if data.dates:
            return [(d, original_time) for d in data.dates]

        # Stepping from the original date; skip dates only apply to the preview
        return [
            (format_date(day), original_time)
            for day in recurrence_dates(date_of(original.start_time), data.frequency.value, data.occurrenceCount)
        ]

    def _book_occurrence(
        self,
        original_id: str,
        template: dict,
        contract: Contract,
        day: date,
        local_time: str,
        duration: int,
    ) -> Optional[str]:
        """
        Book one occurrence as CONTRATADO.

        Returns None on success or the conflict reason when the day is
        blocked or another booking holds the start.
        """
        lock_day(self.db, day)
        if self.availability.is_day_blocked(day):
            return BLOCKED_DAY_REASON

        start = to_instant(day, local_time)
        existing = self.repo.get_slots_at(self.db, start)

        occupied = [s for s in existing if s.id != original_id and not is_vacant_status(s.status)]
        if occupied:
            return f"Horário ocupado ({occupied[0].status})"

        fields = dict(
            template,
            status=SlotStatus.CONTRATADO.value,
            contract_id=contract.id,
            start_time=start,
            end_time=start + timedelta(minutes=duration),
        )

        target = next((s for s in existing if s.id == original_id), None)
        if target is None and existing:
            target = existing[0]

        if target is not None:
            slot = self.repo.update_slot(self.db, target, **fields)
        else:
            slot = self.repo.create_slot(
                self.db, sibling_order=self.repo.next_sibling_order(self.db, start), **fields
            )

        self.exclusivity.apply_exclusivity(slot.id, day, local_time, slot.status, slot.event_type)
        return None

    def create_recurring(self, data: RecurringCreateRequest) -> dict:
        """
        Materialize a recurring series under a new contract.

        Occurrences whose start is held by another booking become conflict
        entries; the rest are still created.
        """
        original = self._get_original_slot(data.originalSlotId)
        if not original.patient_id:
            raise ValidationError("Slot original não possui paciente vinculado")

        if data.patientName or data.patientPhone or data.patientEmail:
            self.patients.update_patient(
                original.patient_id,
                name=data.patientName,
                phone=data.patientPhone or None,
                email=data.patientEmail if data.patientEmail and data.patientEmail.strip() else None,
            )
        patient = self.patients.get_patient(original.patient_id)

        reminders = data.reminders or RemindersInput()
        duration = duration_of(original)
        targets = self._target_slots(original, data)
        base = {
            "event_type": original.event_type,
            "price_category": original.price_category,
            "price": original.price,
            "patient_id": patient.id,
            "reminder_one_hour": reminders.oneHour,
            "reminder_twenty_four_hours": reminders.twentyFourHours,
        }
        original_id = original.id

        contract = self.contracts.create_contract(self.db, data.frequency.value)
        logger.info(f"📝 Contract {contract.short_id} created for patient {patient.id} ({len(targets)} dates)")

        created_count = 0
        conflicts = []
        for date_str, time_str in targets:
            local_time = normalize_time(time_str)
            template = dict(
                base,
                is_paid=bool(data.payments.get(date_str, False)),
                is_inaugural=bool(data.inaugurals.get(date_str, False)),
            )
            try:
                reason = self._book_occurrence(
                    original_id, template, contract, parse_date(date_str), local_time, duration
                )
            except SchedulingError as e:
                logger.error(f"❌ Recurring slot {date_str} {local_time} failed: {e.message}")
                reason = f"Erro ao criar: {e.message}"

            if reason:
                conflicts.append({"date": date_str, "time": local_time, "reason": reason})
            else:
                created_count += 1

        logger.info(
            f"✅ Contract {contract.short_id}: {created_count} slot(s) created, {len(conflicts)} conflict(s)"
        )
        return {
            "createdCount": created_count,
            "conflicts": conflicts,
            "contractId": contract.id,
            "contractShortId": contract.short_id,
        }
