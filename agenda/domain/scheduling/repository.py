"""Slot repository - Database operations for calendar slots"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ...models import Slot
from ...shared.persistence import commit


class SlotRepository:
    """Repository for slot database operations"""

    @staticmethod
    def get_slot(db: Session, slot_id: str) -> Optional[Slot]:
        """Get a slot by ID"""
        return db.query(Slot).filter(Slot.id == slot_id).first()

    @staticmethod
    def get_slots_in_range(
        db: Session, start: datetime, end: datetime, exclude_slot_id: Optional[str] = None
    ) -> list[Slot]:
        """Get slots whose start falls in [start, end], ordered by start then sibling order"""
        query = db.query(Slot).filter(Slot.start_time >= start, Slot.start_time <= end)
        if exclude_slot_id:
            query = query.filter(Slot.id != exclude_slot_id)
        return query.order_by(Slot.start_time.asc(), Slot.sibling_order.asc()).all()

    @staticmethod
    def get_calendar_slots(db: Session, start: datetime, end: datetime) -> list[Slot]:
        """Slots for the calendar view, with patient data loaded"""
        return (
            db.query(Slot)
            .options(joinedload(Slot.patient))
            .filter(Slot.start_time >= start, Slot.start_time <= end)
            .order_by(Slot.start_time.asc(), Slot.sibling_order.asc())
            .all()
        )

    @staticmethod
    def get_slots_at(
        db: Session, start: datetime, exclude_slot_id: Optional[str] = None
    ) -> list[Slot]:
        """Get all slots sharing a start instant, in sibling order"""
        query = db.query(Slot).filter(Slot.start_time == start)
        if exclude_slot_id:
            query = query.filter(Slot.id != exclude_slot_id)
        return query.order_by(Slot.sibling_order.asc(), Slot.created_at.asc()).all()

    @staticmethod
    def next_sibling_order(db: Session, start: datetime) -> int:
        """Max sibling order at a start instant plus one, or 0 when the instant is free"""
        current = db.query(func.max(Slot.sibling_order)).filter(Slot.start_time == start).scalar()
        return 0 if current is None else current + 1

    @staticmethod
    def add_slot(db: Session, **slot_data) -> Slot:
        """Stage a new slot in the session without committing"""
        slot = Slot(**slot_data)
        db.add(slot)
        return slot

    @staticmethod
    def create_slot(db: Session, **slot_data) -> Slot:
        """Create a new slot"""
        slot = Slot(**slot_data)
        db.add(slot)
        commit(db, "create slot")
        db.refresh(slot)
        return slot

    @staticmethod
    def update_slot(db: Session, slot: Slot, **updates) -> Slot:
        """Apply updates as given (None clears a column)"""
        for key, value in updates.items():
            setattr(slot, key, value)
        commit(db, "update slot")
        db.refresh(slot)
        return slot

    @staticmethod
    def save(db: Session) -> None:
        commit(db, "save slots")

    @staticmethod
    def delete_slot(db: Session, slot: Slot) -> None:
        """Delete a slot"""
        db.delete(slot)
        commit(db, "delete slot")

    @staticmethod
    def delete_slots(db: Session, slots: list[Slot]) -> int:
        """Delete several slots in one transaction"""
        for slot in slots:
            db.delete(slot)
        commit(db, "delete slots")
        return len(slots)

    @staticmethod
    def shift_sibling_orders(db: Session, start: datetime, offset: int) -> None:
        """Move every slot at a start instant back by offset positions (not committed)"""
        for sibling in SlotRepository.get_slots_at(db, start):
            sibling.sibling_order = (sibling.sibling_order or 0) + offset

    @staticmethod
    def repack_sibling_orders(db: Session, start: datetime) -> None:
        """Renumber sibling orders at a start instant to 0..n-1, keeping their relative order"""
        siblings = SlotRepository.get_slots_at(db, start)
        changed = False
        for index, sibling in enumerate(siblings):
            if sibling.sibling_order != index:
                sibling.sibling_order = index
                changed = True
        if changed:
            commit(db, "reorder siblings")

    # ========================================================================
    # CONTRACT / PATIENT QUERIES
    # ========================================================================

    @staticmethod
    def get_contract_slots(db: Session, contract_id: str) -> list[Slot]:
        """Get a contract's slots ordered by start"""
        return (
            db.query(Slot)
            .options(joinedload(Slot.patient))
            .filter(Slot.contract_id == contract_id)
            .order_by(Slot.start_time.asc())
            .all()
        )

    @staticmethod
    def get_patient_contract_slots(db: Session, patient_id: str) -> list[Slot]:
        """Get every slot of a patient that belongs to a contract"""
        return (
            db.query(Slot)
            .filter(Slot.patient_id == patient_id, Slot.contract_id.isnot(None))
            .order_by(Slot.start_time.asc())
            .all()
        )

    @staticmethod
    def patient_has_contract_slots(db: Session, patient_id: str) -> bool:
        return (
            db.query(Slot.id)
            .filter(Slot.patient_id == patient_id, Slot.contract_id.isnot(None))
            .first()
            is not None
        )

    @staticmethod
    def get_contract_end_times(db: Session, contract_ids: list[str]) -> dict[str, datetime]:
        """Max end_time per contract"""
        if not contract_ids:
            return {}
        rows = (
            db.query(Slot.contract_id, func.max(Slot.end_time))
            .filter(Slot.contract_id.in_(contract_ids))
            .group_by(Slot.contract_id)
            .all()
        )
        return {contract_id: end_time for contract_id, end_time in rows}

    @staticmethod
    def get_patient_contract_end_times(db: Session, patient_id: str) -> dict[str, datetime]:
        """Max end_time per contract, over all of a patient's contract slots"""
        rows = (
            db.query(Slot.contract_id, func.max(Slot.end_time))
            .filter(Slot.patient_id == patient_id, Slot.contract_id.isnot(None))
            .group_by(Slot.contract_id)
            .all()
        )
        return {contract_id: end_time for contract_id, end_time in rows}
