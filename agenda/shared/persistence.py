"""Transaction helpers shared by the repositories"""

import logging
from datetime import date

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..exceptions import PersistenceError

logger = logging.getLogger(__name__)


def commit(db: Session, action: str) -> None:
    """Commit the session, rolling back and raising PersistenceError on failure"""
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"❌ Database error while trying to {action}: {e}")
        raise PersistenceError(f"Could not {action}") from e


def lock_day(db: Session, day: date) -> None:
    """
    Serialize slot writers for one civil day until the current transaction ends.

    Uses a PostgreSQL transaction-scoped advisory lock; other dialects run
    without it.
    """
    if db.get_bind().dialect.name != "postgresql":
        return
    db.execute(
        text("SELECT pg_advisory_xact_lock(hashtext(:key))"),
        {"key": f"agenda-day:{day.isoformat()}"},
    )
