"""
Renewal service - Extends recurring contracts by one cycle

A renewal replicates a contract's non-inaugural sessions into a new
contract, stepping each one frequency period past the previous, starting
from the civil date of the contract's last session. A session whose time
is taken slides to the nearest free time on the search grid; sessions
with no free time that day are skipped.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ...exceptions import ConflictError, DayBlockedError, NotFoundError, SchedulingError
from ...models import Contract, Slot
from ...shared.persistence import lock_day
from ..scheduling.availability_service import DAY_BLOCKED_MESSAGE, AvailabilityService
from ..scheduling.durations import renewal_duration_of
from ..scheduling.exclusivity import ExclusivityEngine
from ..scheduling.repository import SlotRepository
from ..scheduling.service import TIME_TAKEN_MESSAGE
from ..scheduling.statuses import SlotStatus, is_vacant_status
from ..scheduling.time_calculator import (
    add_frequency,
    date_of,
    day_window,
    format_date,
    local_time_of,
    parse_date,
    to_instant,
)
from .repository import ContractRepository

logger = logging.getLogger(__name__)

NO_TEMPLATES_MESSAGE = "Nenhum slot encontrado para renovar"
NOTHING_CREATED_MESSAGE = "Não foi possível criar nenhuma sessão - todos os horários estão ocupados"


class RenewalService:
    """Service layer for contract renewals"""

    def __init__(
        self,
        db: Session,
        availability: Optional[AvailabilityService] = None,
        exclusivity: Optional[ExclusivityEngine] = None,
    ):
        self.db = db
        self.repo = ContractRepository()
        self.slots = SlotRepository()
        self.availability = availability or AvailabilityService(db)
        self.exclusivity = exclusivity or ExclusivityEngine(db)

    def get_contract(self, contract_id: str) -> Contract:
        contract = self.repo.get_contract_by_id(self.db, contract_id)
        if not contract:
            raise NotFoundError("Contrato não encontrado")
        return contract

    # ========================================================================
    # LOOKUPS
    # ========================================================================

    def find_contracts_expiring_on(self, day: date) -> list[tuple[Contract, datetime]]:
        """Auto-renewal contracts whose last session ends on the given civil date"""
        window_start, window_end = day_window(day)
        return self.repo.get_renewable_contracts_ending_between(self.db, window_start, window_end)

    def is_already_renewed(self, contract: Contract, contract_end: Optional[datetime] = None) -> bool:
        """The contract's patient already has a session in another contract ending later"""
        patient_id = self.repo.get_contract_patient_id(self.db, contract.id)
        if not patient_id:
            return False
        contract_end = contract_end or self.repo.get_contract_end(self.db, contract.id)
        if contract_end is None:
            return False
        return self.repo.patient_has_later_contract(self.db, patient_id, contract.id, contract_end)

    def get_templates(self, contract_id: str) -> list[Slot]:
        """Non-inaugural sessions of the contract, ordered by start"""
        return [s for s in self.slots.get_contract_slots(self.db, contract_id) if not s.is_inaugural]

    # ========================================================================
    # PLANNING
    # ========================================================================

    def _plan(
        self,
        contract: Contract,
        templates: list[Slot],
        first_date: Optional[date] = None,
        first_time: Optional[str] = None,
    ) -> list[dict]:
        """
        Work out date and time for each renewed session without writing.

        Entries with time None have no availability. A pinned first date
        restarts the stepping from it; a pinned first time skips the search
        and is only kept when its exact start is free.
        """
        current = date_of(max(t.end_time for t in templates))
        plan = []

        for index, template in enumerate(templates):
            original_time = local_time_of(template.start_time)
            duration = renewal_duration_of(template)
            current = add_frequency(current, contract.frequency)

            target_time = original_time
            if index == 0 and first_date is not None:
                current = first_date
            if index == 0 and first_time is not None:
                target_time = first_time

            entry = {
                "template": template,
                "date": current,
                "original_time": original_time,
                "duration": duration,
                "time": None,
                "changed": False,
                "pinned": index == 0 and first_time is not None,
            }
            if entry["pinned"]:
                if self._pinned_start_free(current, first_time):
                    entry["time"] = first_time
            else:
                available = self.availability.find_next_available_time(current, target_time, duration)
                if available is not None:
                    entry["time"] = available.time
                    entry["changed"] = available.changed
            plan.append(entry)

        return plan

    def _pinned_start_free(self, day: date, local_time: str) -> bool:
        """A pinned time needs an unblocked day and no non-vacant booking at its exact start"""
        if self.availability.is_day_blocked(day):
            return False
        start = to_instant(day, local_time)
        return all(is_vacant_status(s.status) for s in self.slots.get_slots_at(self.db, start))

    def _check_renewal_start(self, day: date, local_time: str, duration: int, pinned: bool) -> None:
        """
        Re-check a planned session under the day lock.

        A pinned time only has to find its exact start free of non-vacant
        bookings; a searched time must still clear the overlap probe.
        """
        if self.availability.is_day_blocked(day):
            raise DayBlockedError(DAY_BLOCKED_MESSAGE)

        if pinned:
            if not self._pinned_start_free(day, local_time):
                raise ConflictError(TIME_TAKEN_MESSAGE)
            return

        probe = self.availability.probe_overlap(day, local_time, duration)
        if probe.has_conflict:
            raise ConflictError(f"Conflito: {probe.reason or 'Horário ocupado'} às {local_time}")

    def _create_renewal_slot(
        self,
        contract: Contract,
        template: Slot,
        day: date,
        local_time: str,
        duration: int,
        pinned: bool = False,
    ) -> Slot:
        lock_day(self.db, day)
        self._check_renewal_start(day, local_time, duration, pinned)
        start = to_instant(day, local_time)
        slot = self.slots.create_slot(
            self.db,
            start_time=start,
            end_time=start + timedelta(minutes=duration),
            event_type=template.event_type,
            price_category=template.price_category,
            price=template.price,
            status=SlotStatus.CONTRATADO.value,
            patient_id=template.patient_id,
            contract_id=contract.id,
            sibling_order=0,
            is_paid=False,
            is_inaugural=False,
            reminder_one_hour=bool(template.reminder_one_hour),
            reminder_twenty_four_hours=bool(template.reminder_twenty_four_hours),
        )
        self.exclusivity.apply_exclusivity(slot.id, day, local_time, slot.status, slot.event_type)
        self.db.refresh(slot)
        return slot

    def _execute(self, contract: Contract, plan: list[dict]) -> dict:
        """Create the new contract and its sessions; failures count as skipped"""
        new_contract = self.repo.create_contract(
            self.db, contract.frequency, auto_renewal_enabled=contract.auto_renewal_enabled
        )
        logger.info(f"📝 Renewal contract {new_contract.short_id} created from {contract.short_id}")

        created = []
        sessions = []
        skipped = 0
        for entry in plan:
            day = entry["date"]
            if entry["time"] is None:
                logger.warning(f"⚠️ No availability on {day} for {entry['original_time']}, skipping")
                skipped += 1
                continue
            try:
                slot = self._create_renewal_slot(
                    new_contract, entry["template"], day, entry["time"], entry["duration"], entry["pinned"]
                )
            except SchedulingError as e:
                logger.error(f"❌ Renewal slot {day} {entry['time']} failed: {e.message}")
                skipped += 1
                continue

            created.append(slot)
            sessions.append(
                {
                    "date": format_date(date_of(slot.start_time)),
                    "time": local_time_of(slot.start_time),
                    "originalTime": entry["original_time"],
                    "timeWasChanged": entry["changed"],
                    "startTime": slot.start_time,
                    "endTime": slot.end_time,
                }
            )

        new_end_date = max((s["date"] for s in sessions), default=None)
        return {
            "contract": new_contract,
            "created": created,
            "sessions": sessions,
            "skipped": skipped,
            "new_end_date": new_end_date,
        }

    # ========================================================================
    # OPERATIONS
    # ========================================================================

    def renew_contract_automatically(self, contract: Contract) -> dict:
        """
        Renew a contract for one more cycle.

        Raises:
            NotFoundError: The contract has no non-inaugural sessions
        """
        templates = self.get_templates(contract.id)
        if not templates:
            raise NotFoundError(NO_TEMPLATES_MESSAGE)

        logger.info(f"🔄 Renewing contract {contract.short_id}: {len(templates)} session(s)")
        result = self._execute(contract, self._plan(contract, templates))
        new_contract = result["contract"]

        logger.info(
            f"✅ Contract {contract.short_id} renewed as {new_contract.short_id}: "
            f"{len(result['created'])} created, {result['skipped']} skipped"
        )
        return {
            "success": len(result["created"]) > 0,
            "createdCount": len(result["created"]),
            "skippedCount": result["skipped"],
            "sessions": result["sessions"],
            "newEndDate": result["new_end_date"],
            "newContractId": new_contract.id,
            "newContractShortId": new_contract.short_id,
        }

    def get_renewal_preview(self, contract_id: str) -> dict:
        """What a renewal would book right now; writes nothing"""
        contract = self.get_contract(contract_id)
        templates = self.get_templates(contract_id)
        if not templates:
            raise NotFoundError("Nenhum slot encontrado para este contrato")

        sessions = []
        for entry in self._plan(contract, templates):
            time = entry["time"] or entry["original_time"]
            sessions.append(
                {
                    "date": format_date(entry["date"]),
                    "time": time,
                    "originalTime": entry["original_time"],
                    "timeWasChanged": entry["changed"],
                    "noAvailability": entry["time"] is None,
                }
            )
        sessions.sort(key=lambda s: s["date"])

        patient = next((t.patient for t in templates if t.patient is not None), None)
        first = sessions[0]
        return {
            "suggestedDate": first["date"],
            "suggestedTime": first["time"],
            "originalTime": first["originalTime"],
            "timeWasChanged": any(s["timeWasChanged"] for s in sessions),
            "noAvailability": any(s["noAvailability"] for s in sessions),
            "patientName": patient.name if patient else None,
            "patientPhone": patient.phone if patient else None,
            "patientEmail": patient.email if patient else None,
            "frequency": contract.frequency,
            "sessionsCount": len(sessions),
            "sessions": sessions,
        }

    def confirm_renewal_direct(
        self,
        contract_id: str,
        adjusted_date: Optional[str] = None,
        adjusted_time: Optional[str] = None,
    ) -> dict:
        """
        Manual renewal, optionally pinning the first session's date and/or time.

        Raises:
            ConflictError: No session could be booked
        """
        contract = self.get_contract(contract_id)
        templates = self.get_templates(contract_id)
        if not templates:
            raise NotFoundError(NO_TEMPLATES_MESSAGE)

        plan = self._plan(
            contract,
            templates,
            first_date=parse_date(adjusted_date) if adjusted_date else None,
            first_time=adjusted_time,
        )
        if all(entry["time"] is None for entry in plan):
            raise ConflictError(NOTHING_CREATED_MESSAGE)

        result = self._execute(contract, plan)
        if not result["created"]:
            raise ConflictError(NOTHING_CREATED_MESSAGE)

        new_contract = result["contract"]
        logger.info(f"✅ Manual renewal of {contract.short_id}: {len(result['created'])} session(s)")
        return {
            "success": True,
            "slotIds": [s.id for s in result["created"]],
            "sessions": result["sessions"],
            "totalCreated": len(result["created"]),
            "newContractId": new_contract.id,
            "newContractShortId": new_contract.short_id,
        }
