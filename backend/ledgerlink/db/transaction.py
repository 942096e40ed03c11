"""Unit-of-work helpers shared by the services."""

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ledgerlink.core.exceptions import ConcurrencyConflictError


def commit_or_conflict(db: Session) -> None:
    """Commit the unit of work, turning a stale row version into a 409."""
    try:
        db.commit()
    except StaleDataError as e:
        db.rollback()
        raise ConcurrencyConflictError() from e
