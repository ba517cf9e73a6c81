"""Patient service - Patient directory used by booking flows"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...exceptions import NotFoundError
from ...models import Patient
from ...shared.validators import clean_optional
from .repository import PatientRepository

logger = logging.getLogger(__name__)


class PatientService:
    """Service layer for patient lookups and updates"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = PatientRepository()

    def get_patient(self, patient_id: str) -> Patient:
        patient = self.repo.get_by_id(self.db, patient_id)
        if not patient:
            raise NotFoundError("Paciente não encontrado")
        return patient

    def find_by_contact(
        self, phone: Optional[str] = None, email: Optional[str] = None
    ) -> Optional[Patient]:
        """Exact match by phone first, then by email"""
        phone = clean_optional(phone)
        email = clean_optional(email)

        if phone:
            patient = self.repo.get_by_phone(self.db, phone)
            if patient:
                return patient
        if email:
            return self.repo.get_by_email(self.db, email)
        return None

    def find_or_create(
        self,
        name: str,
        phone: Optional[str] = None,
        email: Optional[str] = None,
        privacy_terms_accepted: bool = False,
    ) -> Patient:
        """Return the patient matching phone/email, creating one if none exists"""
        existing = self.find_by_contact(phone, email)
        if existing:
            return existing

        patient = self.repo.create(
            self.db,
            name=name.strip(),
            phone=clean_optional(phone),
            email=clean_optional(email),
            privacy_terms_accepted=bool(privacy_terms_accepted),
        )
        logger.info(f"👤 Patient created: {patient.id}")
        return patient

    def update_patient(
        self,
        patient_id: str,
        name: Optional[str] = None,
        phone: Optional[str] = None,
        email: Optional[str] = None,
        privacy_terms_accepted: Optional[bool] = None,
    ) -> Patient:
        """
        Update the given fields.

        Arguments left as None are untouched; an empty phone or email
        clears the stored value.
        """
        patient = self.get_patient(patient_id)

        updates = {}
        if name is not None and name.strip():
            updates["name"] = name.strip()
        if phone is not None:
            updates["phone"] = clean_optional(phone)
        if email is not None:
            updates["email"] = clean_optional(email)
        if privacy_terms_accepted is not None:
            updates["privacy_terms_accepted"] = privacy_terms_accepted

        if not updates:
            return patient
        return self.repo.update(self.db, patient, **updates)
