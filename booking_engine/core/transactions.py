# booking_engine/core/transactions.py
"""Unit-of-work helpers shared by the scheduling services"""
from contextlib import contextmanager
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from booking_engine.core.exceptions import SchedulingError, StoreError

logger = logging.getLogger(__name__)


@contextmanager
def write_transaction(db: Session, action: str):
    """
    Run a block as one transaction: commit on success, roll back on any
    scheduling error, and surface persistence failures as StoreError.
    """
    try:
        yield db
        db.commit()
    except SchedulingError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Store failure while {action}: {e}")
        raise StoreError(f"Storage failure while {action}") from e
    except Exception:
        db.rollback()
        raise


@contextmanager
def store_errors(db: Session, action: str):
    """Read-side counterpart of write_transaction"""
    try:
        yield db
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Store failure while {action}: {e}")
        raise StoreError(f"Storage failure while {action}") from e
