"""Contract repository - Database operations for recurring contracts"""

import secrets
from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import Contract, Slot
from ...shared.persistence import commit

SHORT_ID_ATTEMPTS = 10


def generate_short_id() -> str:
    """Random 5-digit code in 10000..99999"""
    return str(10000 + secrets.randbelow(90000))


class ContractRepository:
    """Repository for contract database operations"""

    @staticmethod
    def get_contract_by_id(db: Session, contract_id: str) -> Optional[Contract]:
        """Get a specific contract by ID"""
        return db.query(Contract).filter(Contract.id == contract_id).first()

    @staticmethod
    def short_id_exists(db: Session, short_id: str) -> bool:
        return db.query(Contract.id).filter(Contract.short_id == short_id).first() is not None

    @staticmethod
    def create_contract(db: Session, frequency: str, auto_renewal_enabled: bool = False) -> Contract:
        """Create a contract with a 5-digit short code not used by another contract"""
        short_id = generate_short_id()
        for _ in range(SHORT_ID_ATTEMPTS):
            if not ContractRepository.short_id_exists(db, short_id):
                break
            short_id = generate_short_id()

        contract = Contract(
            short_id=short_id,
            frequency=frequency,
            auto_renewal_enabled=auto_renewal_enabled,
        )
        db.add(contract)
        commit(db, "create contract")
        db.refresh(contract)
        return contract

    @staticmethod
    def update_contract(db: Session, contract: Contract, **updates) -> Contract:
        for key, value in updates.items():
            setattr(contract, key, value)
        commit(db, "update contract")
        db.refresh(contract)
        return contract

    @staticmethod
    def get_contract_end(db: Session, contract_id: str) -> Optional[datetime]:
        """Max end_time over the contract's slots"""
        return db.query(func.max(Slot.end_time)).filter(Slot.contract_id == contract_id).scalar()

    @staticmethod
    def get_renewable_contracts_ending_between(
        db: Session, start: datetime, end: datetime
    ) -> list[tuple[Contract, datetime]]:
        """Auto-renewal contracts whose derived end falls in [start, end]"""
        ends = (
            db.query(Slot.contract_id.label("contract_id"), func.max(Slot.end_time).label("end_time"))
            .filter(Slot.contract_id.isnot(None))
            .group_by(Slot.contract_id)
            .subquery()
        )
        return (
            db.query(Contract, ends.c.end_time)
            .join(ends, ends.c.contract_id == Contract.id)
            .filter(
                Contract.auto_renewal_enabled.is_(True),
                ends.c.end_time >= start,
                ends.c.end_time <= end,
            )
            .order_by(ends.c.end_time.asc())
            .all()
        )

    @staticmethod
    def get_contract_patient_id(db: Session, contract_id: str) -> Optional[str]:
        """Patient of the contract's earliest slot that has one"""
        row = (
            db.query(Slot.patient_id)
            .filter(Slot.contract_id == contract_id, Slot.patient_id.isnot(None))
            .order_by(Slot.start_time.asc())
            .first()
        )
        return row[0] if row else None

    @staticmethod
    def patient_has_later_contract(
        db: Session, patient_id: str, contract_id: str, after: datetime
    ) -> bool:
        """Whether the patient has a slot in another contract ending after `after`"""
        return (
            db.query(Slot.id)
            .filter(
                Slot.patient_id == patient_id,
                Slot.contract_id.isnot(None),
                Slot.contract_id != contract_id,
                Slot.end_time > after,
            )
            .first()
            is not None
        )
