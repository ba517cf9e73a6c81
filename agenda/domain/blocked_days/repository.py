"""Blocked day repository - Database operations for blocked days"""

from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ...models import BlockedDay
from ...shared.persistence import commit


class BlockedDayRepository:
    """Repository for blocked day database operations"""

    @staticmethod
    def get_by_date(db: Session, day: date) -> Optional[BlockedDay]:
        """Get the block record for a civil date"""
        return db.query(BlockedDay).filter(BlockedDay.date == day).first()

    @staticmethod
    def get_by_id(db: Session, blocked_day_id: str) -> Optional[BlockedDay]:
        return db.query(BlockedDay).filter(BlockedDay.id == blocked_day_id).first()

    @staticmethod
    def exists(db: Session, day: date) -> bool:
        """Check whether a date is blocked"""
        return db.query(BlockedDay.id).filter(BlockedDay.date == day).first() is not None

    @staticmethod
    def get_in_range(db: Session, start: date, end: date) -> list[BlockedDay]:
        """Get blocked days between two dates (inclusive)"""
        return (
            db.query(BlockedDay)
            .filter(BlockedDay.date >= start, BlockedDay.date <= end)
            .order_by(BlockedDay.date.asc())
            .all()
        )

    @staticmethod
    def create(db: Session, day: date, reason: Optional[str] = None) -> BlockedDay:
        """Create a block record"""
        blocked_day = BlockedDay(date=day, reason=reason)
        db.add(blocked_day)
        commit(db, "block day")
        db.refresh(blocked_day)
        return blocked_day

    @staticmethod
    def update_reason(db: Session, blocked_day: BlockedDay, reason: Optional[str]) -> BlockedDay:
        blocked_day.reason = reason
        commit(db, "update blocked day")
        db.refresh(blocked_day)
        return blocked_day

    @staticmethod
    def delete(db: Session, blocked_day: BlockedDay) -> None:
        """Delete a block record"""
        db.delete(blocked_day)
        commit(db, "delete blocked day")

    @staticmethod
    def delete_by_date(db: Session, day: date) -> int:
        """Delete the block record for a date; returns rows removed"""
        deleted = (
            db.query(BlockedDay)
            .filter(BlockedDay.date == day)
            .delete(synchronize_session=False)
        )
        commit(db, "unblock day")
        return deleted
