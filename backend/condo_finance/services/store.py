"""Record store helpers shared by the services."""

import logging
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from condo_finance.core.errors import StoreError

logger = logging.getLogger(__name__)


@contextmanager
def store_errors(db: Session, operation: str):
    """
    Run a unit of work against the store. Any SQLAlchemy failure rolls the
    session back and surfaces as an opaque StoreError; the cause is only logged.
    """
    try:
        yield
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Store failure during {operation}: {e.__class__.__name__}")
        raise StoreError() from e


def commit(db: Session, operation: str) -> None:
    with store_errors(db, operation):
        db.commit()
