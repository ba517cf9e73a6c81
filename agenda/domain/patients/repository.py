"""Patient repository - Database operations for patients"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Patient
from ...shared.persistence import commit


class PatientRepository:
    """Repository for patient database operations"""

    @staticmethod
    def get_by_id(db: Session, patient_id: str) -> Optional[Patient]:
        return db.query(Patient).filter(Patient.id == patient_id).first()

    @staticmethod
    def get_by_phone(db: Session, phone: str) -> Optional[Patient]:
        """Exact-match phone lookup"""
        return db.query(Patient).filter(Patient.phone == phone).order_by(Patient.created_at).first()

    @staticmethod
    def get_by_email(db: Session, email: str) -> Optional[Patient]:
        """Exact-match email lookup"""
        return db.query(Patient).filter(Patient.email == email).order_by(Patient.created_at).first()

    @staticmethod
    def create(db: Session, **patient_data) -> Patient:
        patient = Patient(**patient_data)
        db.add(patient)
        commit(db, "create patient")
        db.refresh(patient)
        return patient

    @staticmethod
    def update(db: Session, patient: Patient, **updates) -> Patient:
        """Apply updates as given (None clears a field)"""
        for key, value in updates.items():
            setattr(patient, key, value)
        commit(db, "update patient")
        db.refresh(patient)
        return patient
