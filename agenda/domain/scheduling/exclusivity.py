"""Exclusivity engine - Status cascades among slots sharing a start instant"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from .repository import SlotRepository
from .statuses import (
    COMMITTING_STATUSES,
    EXCLUSIVE_STATUSES,
    EventType,
    SlotStatus,
    normalize_event_type,
    normalize_status,
)
from .time_calculator import DateLike, to_instant

logger = logging.getLogger(__name__)


class ExclusivityEngine:
    """
    Keeps a start instant consistent after one of its slots changes status.

    Siblings are the other slots with the exact same start_time.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = SlotRepository()

    def apply_exclusivity(
        self,
        slot_id: str,
        day: DateLike,
        local_time: str,
        new_status: Optional[str],
        event_type: Optional[str],
    ) -> int:
        """
        Delete every sibling when the slot becomes exclusive.

        CONFIRMADO, CONTRATADO and personal activities own their start
        instant. Returns the number of deleted siblings.
        """
        status = normalize_status(new_status)
        if status not in EXCLUSIVE_STATUSES and normalize_event_type(event_type) != EventType.PERSONAL.value:
            return 0

        start = to_instant(day, local_time)
        siblings = self.repo.get_slots_at(self.db, start, exclude_slot_id=slot_id)
        if not siblings:
            return 0

        deleted = self.repo.delete_slots(self.db, siblings)
        self.repo.repack_sibling_orders(self.db, start)
        logger.info(f"🗑️ Exclusivity: deleted {deleted} sibling(s) at {day} {local_time} ({status})")
        return deleted

    def adjust_sibling_status(
        self, slot_id: str, day: DateLike, local_time: str, new_status: Optional[str]
    ) -> int:
        """
        Demote or release siblings after a status change. Returns how many changed.

        RESERVADO / CONFIRMADO push every other sibling to AGUARDANDO.
        Vago releases AGUARDANDO siblings back to Vago and unlinks them.
        """
        status = normalize_status(new_status)
        siblings = self.repo.get_slots_at(self.db, to_instant(day, local_time), exclude_slot_id=slot_id)

        changed = 0
        if status in COMMITTING_STATUSES:
            for sibling in siblings:
                if sibling.status != SlotStatus.AGUARDANDO.value:
                    sibling.status = SlotStatus.AGUARDANDO.value
                    changed += 1
        elif status == SlotStatus.VAGO.value:
            for sibling in siblings:
                if sibling.status == SlotStatus.AGUARDANDO.value:
                    sibling.status = SlotStatus.VAGO.value
                    sibling.patient_id = None
                    sibling.contract_id = None
                    sibling.flow_status = None
                    changed += 1

        if changed:
            self.repo.save(self.db)
            logger.info(f"🔄 {changed} sibling(s) at {day} {local_time} adjusted after {status}")
        return changed
