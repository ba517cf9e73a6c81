"""Contract service - Business logic for recurring contracts"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...exceptions import NotFoundError, ValidationError
from ...models import Contract, Slot
from ..patients.service import PatientService
from ..scheduling.repository import SlotRepository
from ..scheduling.time_calculator import date_of, format_date
from .repository import ContractRepository
from .schemas import ContractUpdate

logger = logging.getLogger(__name__)

CONTRACT_NOT_FOUND = "Contrato não encontrado"
INAUGURAL_RULE_MESSAGE = "Apenas a primeira sessão do primeiro contrato pode ser inaugural."
INAUGURAL_NO_PATIENT_MESSAGE = "Não é possível validar sessão inaugural: paciente não identificado."


def _date_key(slot: Slot) -> str:
    return format_date(date_of(slot.start_time))


class ContractService:
    """Service layer for contract business logic"""

    def __init__(self, db: Session, patients: Optional[PatientService] = None):
        self.db = db
        self.repo = ContractRepository()
        self.slots = SlotRepository()
        self.patients = patients or PatientService(db)

    def get_contract(self, contract_id: str) -> Contract:
        contract = self.repo.get_contract_by_id(self.db, contract_id)
        if not contract:
            raise NotFoundError(CONTRACT_NOT_FOUND)
        return contract

    def get_contract_slots(self, contract_id: str) -> list[Slot]:
        """Get a contract's sessions ordered by start"""
        self.get_contract(contract_id)
        return self.slots.get_contract_slots(self.db, contract_id)

    def _validate_inaugurals(
        self, contract_slots: list[Slot], patient_id: Optional[str], inaugurals: dict[str, bool]
    ) -> None:
        """Only the patient's original session may be inaugural"""
        if not patient_id:
            raise ValidationError(INAUGURAL_NO_PATIENT_MESSAGE)

        original = self.get_original_session(patient_id)
        allowed_id = original["slotId"] if original else contract_slots[0].id

        for slot in contract_slots:
            is_inaugural = inaugurals.get(_date_key(slot), slot.is_inaugural)
            if is_inaugural and slot.id != allowed_id:
                logger.warning(f"⚠️ Inaugural rejected for slot {slot.id}")
                raise ValidationError(INAUGURAL_RULE_MESSAGE)

    def update_contract(self, contract_id: str, data: ContractUpdate) -> list[Slot]:
        """
        Update patient data and per-session flags of a contract.

        Reminders use the per-date entry when present, else the global one.
        """
        contract_slots = self.slots.get_contract_slots(self.db, contract_id)
        if not contract_slots:
            raise NotFoundError(CONTRACT_NOT_FOUND)

        patient_id = next((s.patient_id for s in contract_slots if s.patient_id), None)

        if patient_id and (data.patientName or data.patientPhone or data.patientEmail):
            self.patients.update_patient(
                patient_id,
                name=data.patientName,
                phone=data.patientPhone,
                email=data.patientEmail,
            )

        if data.inaugurals:
            self._validate_inaugurals(contract_slots, patient_id, data.inaugurals)

        payments = data.payments or {}
        inaugurals = data.inaugurals or {}
        reminders_per_date = data.remindersPerDate or {}

        for slot in contract_slots:
            key = _date_key(slot)
            if key in payments:
                slot.is_paid = payments[key]
            if key in inaugurals:
                slot.is_inaugural = inaugurals[key]

            reminders = reminders_per_date.get(key) or data.reminders
            if reminders is not None:
                slot.reminder_one_hour = reminders.oneHour
                slot.reminder_twenty_four_hours = reminders.twentyFourHours

        self.slots.save(self.db)
        logger.info(f"✅ Contract {contract_id} updated ({len(contract_slots)} sessions)")
        return contract_slots

    def set_auto_renewal(self, contract_id: str, enabled: bool) -> dict:
        contract = self.get_contract(contract_id)
        contract = self.repo.update_contract(self.db, contract, auto_renewal_enabled=enabled)
        logger.info(f"🔄 Contract {contract.short_id} auto-renewal {'enabled' if enabled else 'disabled'}")
        return {"success": True, "autoRenewalEnabled": contract.auto_renewal_enabled}

    # ========================================================================
    # PATIENT HISTORY
    # ========================================================================

    def has_previous_contracts(self, patient_id: str) -> bool:
        return self.slots.patient_has_contract_slots(self.db, patient_id)

    def has_previous_contracts_by_contact(
        self, phone: Optional[str] = None, email: Optional[str] = None
    ) -> bool:
        patient = self.patients.find_by_contact(phone, email)
        if not patient:
            return False
        return self.has_previous_contracts(patient.id)

    def get_original_session(self, patient_id: str) -> Optional[dict]:
        """First session of the patient's first contract"""
        contract_slots = self.slots.get_patient_contract_slots(self.db, patient_id)
        if not contract_slots:
            return None
        first = contract_slots[0]
        return {"contractId": first.contract_id, "slotId": first.id, "startTime": first.start_time}

    def get_pending_contracts(
        self, phone: Optional[str] = None, email: Optional[str] = None
    ) -> list[dict]:
        """Contracts of the patient with unpaid, priced, non-inaugural sessions"""
        patient = self.patients.find_by_contact(phone, email)
        if not patient:
            return []

        pending = {}
        for slot in self.slots.get_patient_contract_slots(self.db, patient.id):
            if slot.is_inaugural:
                continue
            entry = pending.setdefault(
                slot.contract_id,
                {"contractId": slot.contract_id, "totalDebt": 0, "unpaidCount": 0, "firstStartTime": slot.start_time},
            )
            if not slot.is_paid and slot.price:
                entry["totalDebt"] += slot.price
                entry["unpaidCount"] += 1

        return [entry for entry in pending.values() if entry["totalDebt"] > 0]
