"""Slot service - Lifecycle operations for calendar slots"""

import logging
from datetime import date, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ...exceptions import ConflictError, DayAlreadyBlockedError, DayBlockedError, NotFoundError, SchedulingError
from ...models import Slot
from ...services.notification_service import FlowNotifier, NullFlowNotifier, dispatch_flow
from ...shared.persistence import lock_day
from ..blocked_days.service import BlockedDayService
from ..patients.service import PatientService
from .availability_service import DAY_BLOCKED_MESSAGE, AvailabilityService
from .durations import (
    COMMERCIAL_DURATION_MINUTES,
    DEFAULT_PERSONAL_DURATION_MINUTES,
    calculate_price,
    duration_for_category,
    duration_of,
    resolve_duration,
    strip_duration_tag,
)
from .exclusivity import ExclusivityEngine
from .repository import SlotRepository
from .schemas import BulkPersonalItem, DoubleSlotCreate, SlotCreate, SlotUpdate
from .statuses import (
    KEPT_ON_BLOCK_STATUSES,
    EventType,
    SlotStatus,
    is_vacant_status,
    normalize_event_type,
    normalize_status,
)
from .time_calculator import (
    DateLike,
    current_week_bounds,
    date_of,
    day_window,
    local_time_of,
    parse_date,
    to_instant,
    today_local,
)

logger = logging.getLogger(__name__)

FLOW_SENT = "Enviado"
TIME_TAKEN_MESSAGE = "Horário já está ocupado"

# Slot columns carried over when a slot moves to another time
_CARRIED_FIELDS = (
    "event_type",
    "price_category",
    "price",
    "status",
    "personal_activity",
    "patient_id",
    "contract_id",
    "flow_status",
    "is_paid",
    "is_inaugural",
    "reminder_one_hour",
    "reminder_twenty_four_hours",
)

# Fields cleared when a slot goes back to Vago, unless the patch sets them
_VACANT_RESETS = {
    "flowStatus": ("flow_status", None),
    "patientId": ("patient_id", None),
    "contractId": ("contract_id", None),
    "isPaid": ("is_paid", False),
    "isInaugural": ("is_inaugural", False),
}


class SlotService:
    """
    Service layer for slot lifecycle operations

    Collaborators are passed in so tests can swap them; each defaults to
    the implementation bound to the same session.
    """

    def __init__(
        self,
        db: Session,
        availability: Optional[AvailabilityService] = None,
        exclusivity: Optional[ExclusivityEngine] = None,
        patients: Optional[PatientService] = None,
        blocked_days: Optional[BlockedDayService] = None,
        notifier: Optional[FlowNotifier] = None,
    ):
        self.db = db
        self.repo = SlotRepository()
        self.blocked_days = blocked_days or BlockedDayService(db)
        self.availability = availability or AvailabilityService(db, self.blocked_days)
        self.exclusivity = exclusivity or ExclusivityEngine(db)
        self.patients = patients or PatientService(db)
        self.notifier = notifier or NullFlowNotifier()

    # ========================================================================
    # QUERIES
    # ========================================================================

    def get_slot(self, slot_id: str) -> Slot:
        slot = self.repo.get_slot(self.db, slot_id)
        if not slot:
            raise NotFoundError("Slot não encontrado")
        return slot

    def get_slots(
        self, start_date: DateLike, end_date: DateLike, today: Optional[date] = None
    ) -> list[tuple[Slot, bool, bool]]:
        """
        Slots whose civil date is within [start_date, end_date].

        Returns (slot, is_last_slot_of_contract, needs_renewal) tuples. A slot
        needs renewal when it ends its contract, that contract is the
        patient's latest, and it ends in the current Monday-Sunday week.
        """
        range_start, _ = day_window(start_date)
        _, range_end = day_window(end_date)
        slots = self.repo.get_calendar_slots(self.db, range_start, range_end)

        contract_ids = list({s.contract_id for s in slots if s.contract_id})
        contract_ends = self.repo.get_contract_end_times(self.db, contract_ids)

        latest_contract = {}
        for patient_id in {s.patient_id for s in slots if s.patient_id and s.contract_id}:
            patient_ends = self.repo.get_patient_contract_end_times(self.db, patient_id)
            if patient_ends:
                latest_contract[patient_id] = max(patient_ends, key=patient_ends.get)

        week_start, week_end = current_week_bounds(today or today_local())

        result = []
        for slot in slots:
            is_last = False
            needs_renewal = False
            if slot.contract_id and slot.patient_id:
                is_last = contract_ends.get(slot.contract_id) == slot.end_time
                if is_last:
                    is_current = latest_contract.get(slot.patient_id) == slot.contract_id
                    needs_renewal = is_current and week_start <= date_of(slot.end_time) <= week_end
            result.append((slot, is_last, needs_renewal))
        return result

    # ========================================================================
    # CREATE
    # ========================================================================

    def _resolve_patient_id(
        self,
        patient_id: Optional[str],
        name: Optional[str],
        phone: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Optional[str]:
        if patient_id:
            return self.patients.get_patient(patient_id).id
        if name and name.strip():
            return self.patients.find_or_create(name, phone=phone, email=email).id
        return None

    def _run_cascades(self, slot: Slot, status: str, event_type: Optional[str]) -> None:
        day = date_of(slot.start_time)
        local_time = local_time_of(slot.start_time)
        self.exclusivity.apply_exclusivity(slot.id, day, local_time, status, event_type)
        self.exclusivity.adjust_sibling_status(slot.id, day, local_time, status)

    def create_slot(self, data: SlotCreate) -> Slot:
        """Create one slot after the blocked-day and overlap checks"""
        day = parse_date(data.date)
        event_type = normalize_event_type(data.eventType)
        is_personal = event_type == EventType.PERSONAL.value
        duration = resolve_duration(event_type, data.priceCategory)

        patient_id = self._resolve_patient_id(
            data.patientId, data.patientName, data.patientPhone, data.patientEmail
        )

        lock_day(self.db, day)
        self.availability.check_overlap(day, data.time, duration)
        start = to_instant(day, data.time)

        if is_personal:
            # For personal activities the status field carries the activity label
            status = SlotStatus.PENDENTE.value
            activity = strip_duration_tag(data.status)
            category = None
            price = None
        else:
            status = normalize_status(data.status)
            activity = None
            category = data.priceCategory
            price = data.price if data.price is not None else calculate_price(event_type, category)

        slot = self.repo.create_slot(
            self.db,
            start_time=start,
            end_time=start + timedelta(minutes=duration),
            event_type=event_type,
            price_category=category,
            price=price,
            status=status,
            personal_activity=activity,
            patient_id=patient_id,
            sibling_order=self.repo.next_sibling_order(self.db, start),
        )
        logger.info(f"✅ Slot created: {slot.id} ({day} {data.time}, {event_type}, {duration}m)")

        # Only exclusive slots touch the stack; siblings keep their status
        if self.exclusivity.apply_exclusivity(slot.id, day, local_time_of(start), status, event_type):
            self.db.refresh(slot)
        return slot

    def create_double_slot(self, data: DoubleSlotCreate) -> list[Slot]:
        """
        Create two slots stacked at the same start.

        The pair is checked as one 60-minute block and both rows end one
        hour after the start. They take sibling orders 0 and 1.
        """
        day = parse_date(data.date)
        lock_day(self.db, day)
        self.availability.check_overlap(day, data.time, COMMERCIAL_DURATION_MINUTES)

        start = to_instant(day, data.time)
        end = start + timedelta(minutes=COMMERCIAL_DURATION_MINUTES)
        self.repo.shift_sibling_orders(self.db, start, 2)

        created = []
        for order, slot_type in enumerate((data.slot1Type, data.slot2Type)):
            event_type = normalize_event_type(slot_type)
            if event_type == EventType.PERSONAL.value:
                fields = {
                    "status": SlotStatus.PENDENTE.value,
                    "personal_activity": strip_duration_tag(data.status),
                    "price_category": None,
                    "price": None,
                }
            else:
                category = data.priceCategory or "padrao"
                fields = {
                    "status": normalize_status(data.status),
                    "personal_activity": None,
                    "price_category": category,
                    "price": calculate_price(event_type, category),
                }
            created.append(
                self.repo.add_slot(
                    self.db,
                    start_time=start,
                    end_time=end,
                    event_type=event_type,
                    sibling_order=order,
                    **fields,
                )
            )

        self.repo.save(self.db)
        for slot in created:
            self.db.refresh(slot)
        logger.info(f"✅ Double slot created at {day} {data.time}: {[s.id for s in created]}")
        return created

    def create_bulk_personal_slots(
        self, items: list[BulkPersonalItem]
    ) -> tuple[list[Slot], list[dict]]:
        """Create personal activities one by one; a failing item does not stop the rest"""
        created = []
        failed = []
        for item in items:
            try:
                slot = self.create_slot(
                    SlotCreate(
                        date=item.date,
                        time=item.time,
                        eventType=EventType.PERSONAL,
                        priceCategory=item.duration,
                        status=item.activity,
                    )
                )
                created.append(slot)
            except SchedulingError as e:
                logger.error(f"❌ Bulk personal slot {item.date} {item.time} failed: {e.message}")
                failed.append({"slot": item, "error": e.message})

        logger.info(f"📊 Bulk personal: {len(created)} created, {len(failed)} failed")
        return created, failed

    # ========================================================================
    # UPDATE / DELETE
    # ========================================================================

    def update_slot(self, slot_id: str, data: SlotUpdate) -> Slot:
        """
        Apply a partial update.

        A status in the patch triggers the exclusivity and sibling cascades
        afterward; other field edits do not.
        """
        slot = self.get_slot(slot_id)
        fields = data.model_fields_set
        updates = {}

        event_type = slot.event_type
        if "eventType" in fields:
            event_type = normalize_event_type(data.eventType)
            updates["event_type"] = event_type
        is_personal = event_type == EventType.PERSONAL.value

        new_duration = None
        if "priceCategory" in fields:
            if is_personal:
                new_duration = duration_for_category(data.priceCategory) or DEFAULT_PERSONAL_DURATION_MINUTES
                updates["price_category"] = None
            else:
                updates["price_category"] = data.priceCategory

        if "price" in fields:
            updates["price"] = data.price
        if "status" in fields:
            updates["status"] = normalize_status(data.status)
        if "personalActivity" in fields:
            updates["personal_activity"] = (
                strip_duration_tag(data.personalActivity) if is_personal else data.personalActivity
            )
        if "patientId" in fields:
            updates["patient_id"] = data.patientId or None
        if "flowStatus" in fields:
            updates["flow_status"] = data.flowStatus
        if "contractId" in fields:
            updates["contract_id"] = data.contractId or None
        if "isPaid" in fields:
            updates["is_paid"] = bool(data.isPaid)
        if "isInaugural" in fields:
            updates["is_inaugural"] = bool(data.isInaugural)
        if "reminderOneHour" in fields:
            updates["reminder_one_hour"] = bool(data.reminderOneHour)
        if "reminderTwentyFourHours" in fields:
            updates["reminder_twenty_four_hours"] = bool(data.reminderTwentyFourHours)

        resulting_status = updates.get("status", slot.status)
        if is_vacant_status(resulting_status):
            for field, (column, cleared) in _VACANT_RESETS.items():
                if field not in fields:
                    updates[column] = cleared

        # Duration: an explicit new category wins, then the stored interval
        if new_duration is not None:
            duration = new_duration
        elif is_personal and slot.event_type == EventType.PERSONAL.value:
            duration = resolve_duration(event_type, None, slot.start_time, slot.end_time)
        else:
            duration = resolve_duration(event_type)

        day = date_of(slot.start_time)
        local_time = local_time_of(slot.start_time)
        self.availability.check_overlap(
            day, local_time, duration, exclude_slot_id=slot.id, include_siblings=False
        )
        updates["end_time"] = slot.start_time + timedelta(minutes=duration)

        patient_fields = {"patientName", "patientPhone", "patientEmail", "privacyTermsAccepted"} & fields
        if patient_fields:
            linked_patient_id = updates.get("patient_id", slot.patient_id)
            if linked_patient_id:
                self.patients.update_patient(
                    linked_patient_id,
                    name=data.patientName,
                    phone=data.patientPhone,
                    email=data.patientEmail,
                    privacy_terms_accepted=data.privacyTermsAccepted,
                )
            elif data.patientName and data.patientName.strip():
                patient = self.patients.find_or_create(
                    data.patientName,
                    phone=data.patientPhone,
                    email=data.patientEmail,
                    privacy_terms_accepted=bool(data.privacyTermsAccepted),
                )
                updates["patient_id"] = patient.id

        slot = self.repo.update_slot(self.db, slot, **updates)
        logger.info(f"✅ Slot updated: {slot.id} ({', '.join(sorted(updates))})")

        if "status" in fields:
            self._run_cascades(slot, slot.status, slot.event_type)
            self.db.refresh(slot)
        return slot

    def delete_slot(self, slot_id: str) -> None:
        """Hard-delete a slot and re-pack the sibling orders left at its start"""
        slot = self.get_slot(slot_id)
        start = slot.start_time
        self.repo.delete_slot(self.db, slot)
        self.repo.repack_sibling_orders(self.db, start)
        logger.info(f"🗑️ Slot deleted: {slot_id}")

    # ========================================================================
    # STATUS TRANSITIONS
    # ========================================================================

    def reserve_slot(self, slot_id: str, patient_name: str, patient_phone: Optional[str] = None) -> Slot:
        """Reserve for a patient; siblings wait as AGUARDANDO"""
        slot = self.get_slot(slot_id)
        patient = self.patients.find_or_create(patient_name, phone=patient_phone)

        slot = self.repo.update_slot(
            self.db, slot, status=SlotStatus.RESERVADO.value, patient_id=patient.id
        )
        self.exclusivity.adjust_sibling_status(
            slot.id, date_of(slot.start_time), local_time_of(slot.start_time), slot.status
        )
        self.db.refresh(slot)
        logger.info(f"📅 Slot {slot.id} reserved for patient {patient.id}")
        return slot

    def confirm_slot(self, slot_id: str) -> Slot:
        """Confirm; every sibling at the same start is removed"""
        slot = self.get_slot(slot_id)
        slot = self.repo.update_slot(self.db, slot, status=SlotStatus.CONFIRMADO.value)
        self.exclusivity.apply_exclusivity(
            slot.id,
            date_of(slot.start_time),
            local_time_of(slot.start_time),
            slot.status,
            slot.event_type,
        )
        self.db.refresh(slot)
        logger.info(f"✅ Slot {slot.id} confirmed")
        return slot

    async def send_flow(self, slot_id: str, patient_name: str, patient_phone: Optional[str] = None) -> Slot:
        """Trigger the messaging flow and mark the slot; delivery failures are only logged"""
        slot = self.get_slot(slot_id)
        await dispatch_flow(self.notifier, slot.id, patient_name, patient_phone)
        return self.repo.update_slot(self.db, slot, flow_status=FLOW_SENT)

    def change_slot_time(self, slot_id: str, new_date: DateLike, new_time: str) -> Slot:
        """
        Move a slot to another date/time.

        Only the exact new start is checked: it is taken when a slot there
        is not Vago, is not in the same contract and is not this slot. The
        slot is recreated at the front of its new stack (sibling order 0).
        """
        slot = self.get_slot(slot_id)
        duration = duration_of(slot)
        day = parse_date(new_date)

        if self.blocked_days.is_blocked(day):
            raise DayBlockedError(DAY_BLOCKED_MESSAGE)
        lock_day(self.db, day)

        new_start = to_instant(day, new_time)
        for other in self.repo.get_slots_at(self.db, new_start, exclude_slot_id=slot.id):
            same_contract = bool(slot.contract_id) and other.contract_id == slot.contract_id
            if not is_vacant_status(other.status) and not same_contract:
                raise ConflictError(TIME_TAKEN_MESSAGE)

        old_start = slot.start_time
        carried = {field: getattr(slot, field) for field in _CARRIED_FIELDS}

        self.db.delete(slot)
        self.repo.shift_sibling_orders(self.db, new_start, 1)
        moved = self.repo.add_slot(
            self.db,
            start_time=new_start,
            end_time=new_start + timedelta(minutes=duration),
            sibling_order=0,
            **carried,
        )
        self.repo.save(self.db)
        self.repo.repack_sibling_orders(self.db, old_start)
        self.db.refresh(moved)

        logger.info(f"🔄 Slot {slot_id} moved to {day} {new_time} as {moved.id}")
        return moved

    def block_day(self, day: DateLike) -> dict:
        """
        Clear a day of free slots and mark it blocked.

        Non-personal slots that are Vago or INDISPONIVEL are deleted.
        Personal slots and AGUARDANDO/RESERVADO/CONFIRMADO/CONTRATADO ones stay.
        """
        day = parse_date(day)
        window_start, window_end = day_window(day)
        slots = self.repo.get_slots_in_range(self.db, window_start, window_end)

        to_delete = [
            s
            for s in slots
            if s.event_type != EventType.PERSONAL.value
            and (is_vacant_status(s.status) or s.status == SlotStatus.INDISPONIVEL.value)
        ]
        kept = [
            s
            for s in slots
            if s.event_type == EventType.PERSONAL.value or s.status in KEPT_ON_BLOCK_STATUSES
        ]

        if to_delete:
            starts = {s.start_time for s in to_delete}
            self.repo.delete_slots(self.db, to_delete)
            for start in starts:
                self.repo.repack_sibling_orders(self.db, start)

        try:
            self.blocked_days.create(day)
        except DayAlreadyBlockedError:
            logger.info(f"Day {day} was already blocked")

        logger.info(f"🚫 Day {day} blocked: {len(to_delete)} slot(s) deleted, {len(kept)} kept")
        return {"deletedCount": len(to_delete), "keptCount": len(kept)}
