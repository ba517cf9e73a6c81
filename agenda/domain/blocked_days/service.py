"""Blocked day service - Days closed to new bookings"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...exceptions import DayAlreadyBlockedError, NotFoundError
from ...models import BlockedDay
from ..scheduling.time_calculator import DateLike, parse_date
from .repository import BlockedDayRepository

logger = logging.getLogger(__name__)

ALREADY_BLOCKED_MESSAGE = "Este dia já está bloqueado"


class BlockedDayService:
    """Directory of blocked calendar days"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BlockedDayRepository()

    def is_blocked(self, day: DateLike) -> bool:
        return self.repo.exists(self.db, parse_date(day))

    def get_by_date(self, day: DateLike) -> Optional[BlockedDay]:
        return self.repo.get_by_date(self.db, parse_date(day))

    def get_blocked_day(self, blocked_day_id: str) -> BlockedDay:
        blocked_day = self.repo.get_by_id(self.db, blocked_day_id)
        if not blocked_day:
            raise NotFoundError("Dia bloqueado não encontrado")
        return blocked_day

    def list_range(self, start: DateLike, end: DateLike) -> list[BlockedDay]:
        return self.repo.get_in_range(self.db, parse_date(start), parse_date(end))

    def create(self, day: DateLike, reason: Optional[str] = None) -> BlockedDay:
        """Block a date; fails if it is already blocked"""
        day = parse_date(day)
        if self.repo.exists(self.db, day):
            raise DayAlreadyBlockedError(ALREADY_BLOCKED_MESSAGE)

        blocked_day = self.repo.create(self.db, day, reason)
        logger.info(f"🚫 Day {day} blocked (reason: {reason or '-'})")
        return blocked_day

    def update_reason(self, blocked_day_id: str, reason: Optional[str]) -> BlockedDay:
        blocked_day = self.get_blocked_day(blocked_day_id)
        return self.repo.update_reason(self.db, blocked_day, reason)

    def delete(self, blocked_day_id: str) -> None:
        blocked_day = self.get_blocked_day(blocked_day_id)
        self.repo.delete(self.db, blocked_day)
        logger.info(f"✅ Day {blocked_day.date} unblocked")

    def unblock(self, day: DateLike) -> int:
        """Remove the block for a date, if any"""
        day = parse_date(day)
        deleted = self.repo.delete_by_date(self.db, day)
        if deleted:
            logger.info(f"✅ Day {day} unblocked")
        return deleted
