# Shared router helpers for the Campaign Ledger

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from services.errors import PersistenceError

logger = logging.getLogger(__name__)


def commit(db: Session, action: str) -> None:
    """Commit the request's unit of work, surfacing database failures as PersistenceError."""
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Commit failed while trying to {action}: {e}")
        raise PersistenceError(f"Could not {action}. Please try again.")
