"""Slot creation, editing, moving and day blocking."""

from datetime import date, timedelta

import pytest

from agenda.domain.blocked_days.service import BlockedDayService
from agenda.domain.scheduling.repository import SlotRepository
from agenda.domain.scheduling.schemas import (
    BulkPersonalItem,
    DoubleSlotCreate,
    SlotCreate,
    SlotUpdate,
)
from agenda.domain.scheduling.service import SlotService
from agenda.domain.scheduling.time_calculator import (
    date_of,
    day_window,
    local_time_of,
)
from agenda.exceptions import ConflictError, DayBlockedError, NotFoundError
from tests.fakes.fake_flow_notifier import FakeFlowNotifier

DAY = "2026-05-06"


@pytest.fixture
def service(db):
    return SlotService(db)


class TestCreate:
    def test_create_resolves_patient_by_phone(self, service, make_patient) -> None:
        patient = make_patient(phone="11988887777")

        slot = service.create_slot(
            SlotCreate(
                date=DAY,
                time="09:00",
                eventType="presential",
                priceCategory="promocional",
                status="RESERVADO",
                patientName="Outro Nome",
                patientPhone="11988887777",
            )
        )

        assert slot.patient_id == patient.id
        assert slot.price == 10000
        assert slot.end_time - slot.start_time == timedelta(minutes=60)

    def test_create_with_unknown_patient_id(self, service) -> None:
        with pytest.raises(NotFoundError):
            service.create_slot(SlotCreate(date=DAY, time="09:00", eventType="online", patientId="missing"))

    def test_personal_duration_from_category(self, service) -> None:
        slot = service.create_slot(
            SlotCreate(date=DAY, time="12:00", eventType="personal", priceCategory="1h30", status="Almoço#1h30")
        )

        assert slot.end_time - slot.start_time == timedelta(minutes=90)
        assert slot.personal_activity == "Almoço"
        assert slot.price is None
        assert slot.price_category is None

    def test_double_slot_stacks_two_siblings(self, service) -> None:
        first, second = service.create_double_slot(
            DoubleSlotCreate(date=DAY, time="14:00", slot1Type="online", slot2Type="presential")
        )

        assert first.start_time == second.start_time
        assert [first.sibling_order, second.sibling_order] == [0, 1]
        assert first.price_category == "padrao"
        assert second.price == 20000

    def test_double_slot_checks_a_full_hour(self, service, make_slot) -> None:
        make_slot(DAY, "14:30", event_type="online", status="CONFIRMADO")

        with pytest.raises(ConflictError):
            service.create_double_slot(
                DoubleSlotCreate(date=DAY, time="14:00", slot1Type="personal", slot2Type="personal")
            )

    def test_bulk_personal_reports_failures_per_item(self, service) -> None:
        BlockedDayService(service.db).create("2026-05-07")

        created, failed = service.create_bulk_personal_slots(
            [
                BulkPersonalItem(date=DAY, time="08:00", activity="Leitura", duration="1h"),
                BulkPersonalItem(date="2026-05-07", time="08:00", activity="Leitura"),
                BulkPersonalItem(date=DAY, time="08:30", activity="Academia"),
            ]
        )

        assert len(created) == 1
        assert created[0].personal_activity == "Leitura"
        assert len(failed) == 2
        assert "bloqueado" in failed[0]["error"]
        assert failed[1]["slot"].activity == "Academia"


class TestUpdate:
    def test_partial_update_keeps_other_fields(self, service, make_slot) -> None:
        slot = make_slot(DAY, "09:00", event_type="online", price_category="padrao", price=15000, status="RESERVADO")

        updated = service.update_slot(slot.id, SlotUpdate(isPaid=True))

        assert updated.is_paid
        assert updated.status == "RESERVADO"
        assert updated.price == 15000

    def test_back_to_vacant_clears_links(self, service, make_slot, make_patient, make_contract) -> None:
        patient = make_patient()
        contract = make_contract()
        slot = make_slot(
            DAY,
            "09:00",
            event_type="online",
            status="CONFIRMADO",
            patient_id=patient.id,
            contract_id=contract.id,
            is_paid=True,
        )

        updated = service.update_slot(slot.id, SlotUpdate(status="vago"))

        assert updated.status == "Vago"
        assert updated.patient_id is None
        assert updated.contract_id is None
        assert not updated.is_paid

    def test_personal_category_change_is_overlap_checked(self, service, make_slot) -> None:
        slot = make_slot(DAY, "09:00", duration=30, event_type="personal", status="PENDENTE")
        make_slot(DAY, "10:00", event_type="online", status="CONFIRMADO")

        with pytest.raises(ConflictError):
            service.update_slot(slot.id, SlotUpdate(priceCategory="2h"))

        updated = service.update_slot(slot.id, SlotUpdate(priceCategory="1h"))
        assert updated.end_time - updated.start_time == timedelta(minutes=60)

    def test_update_creates_patient_from_name(self, service, make_slot) -> None:
        slot = make_slot(DAY, "09:00", event_type="online", status="RESERVADO")

        updated = service.update_slot(slot.id, SlotUpdate(patientName="João", patientPhone="1133334444"))

        assert updated.patient is not None
        assert updated.patient.phone == "1133334444"


class TestChangeTime:
    def test_move_recreates_slot_at_front(self, service, make_slot, make_patient) -> None:
        patient = make_patient()
        slot = make_slot(DAY, "09:00", event_type="online", status="CONFIRMADO", patient_id=patient.id)
        waiting = make_slot("2026-05-08", "15:00", status="Vago")

        slot_id = slot.id

        moved = service.change_slot_time(slot_id, "2026-05-08", "15:00")

        assert moved.id != slot_id
        assert moved.patient_id == patient.id
        assert moved.sibling_order == 0
        assert date_of(moved.start_time) == date(2026, 5, 8)
        assert local_time_of(moved.start_time) == "15:00"
        db = service.db
        db.refresh(waiting)
        assert waiting.sibling_order == 1
        assert SlotRepository.get_slot(db, slot_id) is None

    def test_move_onto_occupied_start_fails(self, service, make_slot) -> None:
        slot = make_slot(DAY, "09:00", event_type="online", status="CONFIRMADO")
        make_slot(DAY, "11:00", event_type="online", status="RESERVADO")

        with pytest.raises(ConflictError):
            service.change_slot_time(slot.id, DAY, "11:00")

    def test_move_within_same_contract_is_allowed(self, service, make_slot, make_contract) -> None:
        contract = make_contract()
        slot = make_slot(DAY, "09:00", event_type="online", status="CONTRATADO", contract_id=contract.id)
        make_slot(DAY, "11:00", event_type="online", status="CONTRATADO", contract_id=contract.id)

        moved = service.change_slot_time(slot.id, DAY, "11:00")
        assert moved.contract_id == contract.id

    def test_move_to_blocked_day_fails(self, service, make_slot) -> None:
        slot = make_slot(DAY, "09:00", event_type="online", status="CONFIRMADO")
        BlockedDayService(service.db).create("2026-05-09")

        with pytest.raises(DayBlockedError):
            service.change_slot_time(slot.id, "2026-05-09", "09:00")


class TestBlockDay:
    def test_block_day_sweeps_free_slots(self, service, make_slot) -> None:
        make_slot(DAY, "08:00", status="Vago")
        make_slot(DAY, "09:00", status="INDISPONIVEL")
        make_slot(DAY, "10:00", event_type="online", status="CONFIRMADO")
        make_slot(DAY, "11:00", event_type="personal", status="PENDENTE")
        make_slot(DAY, "12:00", event_type="online", status="AGUARDANDO")

        result = service.block_day(DAY)

        assert result == {"deletedCount": 2, "keptCount": 3}
        assert BlockedDayService(service.db).is_blocked(DAY)
        start, end = day_window(DAY)
        statuses = sorted(s.status for s in SlotRepository.get_slots_in_range(service.db, start, end))
        assert statuses == ["AGUARDANDO", "CONFIRMADO", "PENDENTE"]

    def test_block_day_twice_is_harmless(self, service) -> None:
        service.block_day(DAY)
        assert service.block_day(DAY) == {"deletedCount": 0, "keptCount": 0}


class TestCalendar:
    def test_last_session_of_current_contract_needs_renewal(
        self, service, make_slot, make_patient, make_contract
    ) -> None:
        patient = make_patient()
        contract = make_contract()
        first = make_slot("2026-05-04", "09:00", event_type="online", status="CONTRATADO",
                          patient_id=patient.id, contract_id=contract.id)
        last = make_slot("2026-05-06", "09:00", event_type="online", status="CONTRATADO",
                         patient_id=patient.id, contract_id=contract.id)

        rows = service.get_slots("2026-05-04", "2026-05-10", today=date(2026, 5, 5))
        flags = {slot.id: (is_last, needs_renewal) for slot, is_last, needs_renewal in rows}

        assert flags[first.id] == (False, False)
        assert flags[last.id] == (True, True)

    def test_renewed_contract_no_longer_needs_renewal(
        self, service, make_slot, make_patient, make_contract
    ) -> None:
        patient = make_patient()
        old = make_contract()
        new = make_contract()
        last = make_slot("2026-05-06", "09:00", event_type="online", status="CONTRATADO",
                         patient_id=patient.id, contract_id=old.id)
        make_slot("2026-05-13", "09:00", event_type="online", status="CONTRATADO",
                  patient_id=patient.id, contract_id=new.id)

        rows = service.get_slots("2026-05-04", "2026-05-10", today=date(2026, 5, 5))

        assert [(s.id, is_last, needs) for s, is_last, needs in rows] == [(last.id, True, False)]


class TestSendFlow:
    @pytest.mark.asyncio
    async def test_send_flow_marks_slot(self, db, make_slot) -> None:
        notifier = FakeFlowNotifier()
        slot = make_slot(DAY, "09:00", event_type="online", status="RESERVADO")

        updated = await SlotService(db, notifier=notifier).send_flow(slot.id, "Ana", "11900000000")

        assert updated.flow_status == "Enviado"
        assert notifier.payloads == [{"patientName": "Ana", "patientPhone": "11900000000", "slotId": slot.id}]

    @pytest.mark.asyncio
    async def test_send_flow_failure_still_marks_slot(self, db, make_slot) -> None:
        notifier = FakeFlowNotifier(error=RuntimeError("webhook down"))
        slot = make_slot(DAY, "09:00", event_type="online", status="RESERVADO")

        updated = await SlotService(db, notifier=notifier).send_flow(slot.id, "Ana")

        assert updated.flow_status == "Enviado"

