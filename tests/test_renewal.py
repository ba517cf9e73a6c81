"""Contract renewal: preview, manual confirmation and the daily job."""

from datetime import date

import pytest

from agenda.domain.blocked_days.service import BlockedDayService
from agenda.domain.contracts.renewal_service import RenewalService
from agenda.domain.scheduling.repository import SlotRepository
from agenda.exceptions import ConflictError, NotFoundError
from agenda.models import Contract
from agenda.services.renewal_automation import run_daily_renewal_job

LAST_DAY = date(2026, 6, 15)


@pytest.fixture
def patient(make_patient):
    return make_patient(name="Bruno Reis", phone="31955554444", email="bruno@example.com")


@pytest.fixture
def contract(db, make_contract, make_slot, patient):
    """Weekly contract: inaugural 06-01, then 06-08 and 06-15 at 10:00."""
    contract = make_contract("weekly", auto_renewal_enabled=True)
    for day, inaugural in (("2026-06-01", True), ("2026-06-08", False), ("2026-06-15", False)):
        make_slot(day, "10:00", event_type="online", price_category="padrao", price=15000,
                  status="CONTRATADO", patient_id=patient.id, contract_id=contract.id,
                  is_inaugural=inaugural, is_paid=True, reminder_twenty_four_hours=True)
    return contract


class TestPreview:
    def test_preview_steps_from_last_session(self, db, contract) -> None:
        preview = RenewalService(db).get_renewal_preview(contract.id)

        assert [s["date"] for s in preview["sessions"]] == ["2026-06-22", "2026-06-29"]
        assert preview["suggestedDate"] == "2026-06-22"
        assert preview["suggestedTime"] == "10:00"
        assert preview["timeWasChanged"] is False
        assert preview["noAvailability"] is False
        assert preview["patientName"] == "Bruno Reis"
        assert preview["frequency"] == "weekly"
        assert preview["sessionsCount"] == 2

    def test_taken_time_slides_to_next_free(self, db, contract, make_slot) -> None:
        make_slot("2026-06-22", "10:00", event_type="presential", status="CONFIRMADO")

        preview = RenewalService(db).get_renewal_preview(contract.id)

        first = preview["sessions"][0]
        assert first["time"] == "11:00"
        assert first["originalTime"] == "10:00"
        assert first["timeWasChanged"] is True
        assert preview["timeWasChanged"] is True

    def test_blocked_day_has_no_availability(self, db, contract) -> None:
        BlockedDayService(db).create("2026-06-29")

        preview = RenewalService(db).get_renewal_preview(contract.id)

        assert preview["sessions"][1]["noAvailability"] is True
        assert preview["sessions"][1]["time"] == "10:00"
        assert preview["noAvailability"] is True

    def test_unknown_contract(self, db) -> None:
        with pytest.raises(NotFoundError) as exc:
            RenewalService(db).get_renewal_preview("missing")
        assert exc.value.message == "Contrato não encontrado"

    def test_preview_writes_nothing(self, db, contract) -> None:
        RenewalService(db).get_renewal_preview(contract.id)
        assert db.query(Contract).count() == 1


class TestAutomatic:
    def test_renewal_creates_new_contract(self, db, contract) -> None:
        result = RenewalService(db).renew_contract_automatically(contract)

        assert result["success"] is True
        assert result["createdCount"] == 2
        assert result["skippedCount"] == 0
        assert result["newEndDate"] == "2026-06-29"
        assert result["newContractId"] != contract.id

        new_contract = db.get(Contract, result["newContractId"])
        assert new_contract.frequency == "weekly"
        assert new_contract.auto_renewal_enabled is True

        slots = SlotRepository.get_contract_slots(db, new_contract.id)
        assert [s.status for s in slots] == ["CONTRATADO", "CONTRATADO"]
        assert all(not s.is_paid and not s.is_inaugural for s in slots)
        assert all(s.reminder_twenty_four_hours for s in slots)
        assert all(s.sibling_order == 0 for s in slots)

    def test_vacant_siblings_are_purged(self, db, contract, make_slot) -> None:
        vacant_id = make_slot("2026-06-22", "10:00", status="Vago").id

        RenewalService(db).renew_contract_automatically(contract)

        assert SlotRepository.get_slot(db, vacant_id) is None

    def test_day_without_free_time_is_skipped(self, db, contract) -> None:
        BlockedDayService(db).create("2026-06-22")

        result = RenewalService(db).renew_contract_automatically(contract)

        assert result["createdCount"] == 1
        assert result["skippedCount"] == 1
        assert [s["date"] for s in result["sessions"]] == ["2026-06-29"]

    def test_contract_with_only_inaugural_session(self, db, make_contract, make_slot, patient) -> None:
        only = make_contract("weekly", auto_renewal_enabled=True)
        make_slot("2026-06-01", "10:00", event_type="online", status="CONTRATADO",
                  patient_id=patient.id, contract_id=only.id, is_inaugural=True)

        with pytest.raises(NotFoundError):
            RenewalService(db).renew_contract_automatically(only)
        assert db.query(Contract).count() == 1


class TestDirect:
    def test_pinned_first_session(self, db, contract) -> None:
        result = RenewalService(db).confirm_renewal_direct(contract.id, "2026-06-24", "15:00")

        assert result["success"] is True
        assert result["totalCreated"] == 2
        assert [(s["date"], s["time"]) for s in result["sessions"]] == [
            ("2026-06-24", "15:00"),
            ("2026-07-01", "10:00"),
        ]
        assert result["sessions"][0]["timeWasChanged"] is False
        assert len(result["slotIds"]) == 2

    def test_nothing_available(self, db, contract) -> None:
        blocked = BlockedDayService(db)
        blocked.create("2026-06-22")
        blocked.create("2026-06-29")

        with pytest.raises(ConflictError):
            RenewalService(db).confirm_renewal_direct(contract.id)
        assert db.query(Contract).count() == 1

    def test_pinned_time_keeps_existing_booking(self, db, contract, make_slot, make_patient) -> None:
        other = make_patient(name="Clara Souza", phone="31900001111")
        booked_id = make_slot("2026-06-24", "15:00", event_type="presential", status="CONFIRMADO",
                              patient_id=other.id).id

        result = RenewalService(db).confirm_renewal_direct(contract.id, "2026-06-24", "15:00")

        assert result["totalCreated"] == 1
        assert [(s["date"], s["time"]) for s in result["sessions"]] == [("2026-07-01", "10:00")]
        booked = SlotRepository.get_slot(db, booked_id)
        assert booked.status == "CONFIRMADO"
        assert booked.patient_id == other.id

    def test_pinned_time_on_vacant_start(self, db, contract, make_slot) -> None:
        vacant_id = make_slot("2026-06-24", "15:00", status="Vago").id

        result = RenewalService(db).confirm_renewal_direct(contract.id, "2026-06-24", "15:00")

        assert result["totalCreated"] == 2
        assert SlotRepository.get_slot(db, vacant_id) is None

    def test_pinned_time_on_blocked_day_is_skipped(self, db, contract) -> None:
        BlockedDayService(db).create("2026-06-24")

        result = RenewalService(db).confirm_renewal_direct(contract.id, "2026-06-24", "15:00")

        assert result["totalCreated"] == 1
        assert [s["date"] for s in result["sessions"]] == ["2026-07-01"]

    def test_pinned_blocked_day_and_no_other_time(self, db, contract) -> None:
        blocked = BlockedDayService(db)
        blocked.create("2026-06-24")
        blocked.create("2026-07-01")

        with pytest.raises(ConflictError):
            RenewalService(db).confirm_renewal_direct(contract.id, "2026-06-24", "15:00")
        assert db.query(Contract).count() == 1

    def test_booking_made_after_planning_is_respected(self, db, contract, make_slot) -> None:
        service = RenewalService(db)
        plan = service._plan(contract, service.get_templates(contract.id))
        rival_id = make_slot("2026-06-22", "10:00", event_type="presential", status="CONFIRMADO").id

        result = service._execute(contract, plan)

        assert result["skipped"] == 1
        assert [s["date"] for s in result["sessions"]] == ["2026-06-29"]
        assert SlotRepository.get_slot(db, rival_id).status == "CONFIRMADO"


class TestDailyJob:
    def test_job_renews_contracts_ending_today(self, db, contract) -> None:
        summary = run_daily_renewal_job(db, today=LAST_DAY)

        assert summary == {
            "processedCount": 1,
            "renewedCount": 1,
            "skippedAlreadyRenewed": 0,
            "skippedNoSlots": 0,
            "totalSlotsCreated": 2,
            "errors": [],
        }

    def test_second_run_is_idempotent(self, db, contract) -> None:
        run_daily_renewal_job(db, today=LAST_DAY)
        summary = run_daily_renewal_job(db, today=LAST_DAY)

        assert summary["processedCount"] == 1
        assert summary["skippedAlreadyRenewed"] == 1
        assert summary["renewedCount"] == 0
        assert db.query(Contract).count() == 2

    def test_other_days_and_disabled_contracts_are_ignored(self, db, contract) -> None:
        assert run_daily_renewal_job(db, today=date(2026, 6, 14))["processedCount"] == 0

        contract.auto_renewal_enabled = False
        db.commit()
        assert run_daily_renewal_job(db, today=LAST_DAY)["processedCount"] == 0

    def test_no_free_time_counts_as_skipped(self, db, contract) -> None:
        blocked = BlockedDayService(db)
        blocked.create("2026-06-22")
        blocked.create("2026-06-29")

        summary = run_daily_renewal_job(db, today=LAST_DAY)

        assert summary["skippedNoSlots"] == 1
        assert summary["renewedCount"] == 0

    def test_per_contract_errors_are_collected(self, db, make_contract, make_slot, patient) -> None:
        only = make_contract("weekly", auto_renewal_enabled=True)
        make_slot("2026-06-15", "10:00", event_type="online", status="CONTRATADO",
                  patient_id=patient.id, contract_id=only.id, is_inaugural=True)

        summary = run_daily_renewal_job(db, today=LAST_DAY)

        assert summary["processedCount"] == 1
        assert summary["errors"] == [f"Contrato {only.short_id}: Nenhum slot encontrado para renovar"]

    def test_fatal_error_is_reported(self, db) -> None:
        class BrokenRenewals:
            def find_contracts_expiring_on(self, day):
                raise RuntimeError("database offline")

        summary = run_daily_renewal_job(db, renewal_service=BrokenRenewals(), today=LAST_DAY)

        assert summary["errors"] == ["Erro fatal: database offline"]
        assert summary["processedCount"] == 0
