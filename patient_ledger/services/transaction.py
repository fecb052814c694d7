"""Scoped transactions for ledger writes.

``ledger_transaction`` commits when the block finishes and rolls back on
every other exit path (ledger errors, SQLAlchemy errors, cancellation,
KeyboardInterrupt). SQLAlchemy failures are re-raised as ``StorageError`` so
callers never see driver exceptions or partially applied ledger state.
"""

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from patient_ledger.services.errors import LedgerError, StorageError

logger = logging.getLogger(__name__)


@contextmanager
def ledger_transaction(db: Session, operation: str) -> Iterator[Session]:
    """Run a block of ledger writes as one atomic unit.

    Args:
        db: Database session
        operation: Short name used in log lines and error messages

    Yields:
        The same session, for convenience

    Raises:
        StorageError: If the database rejected any statement or the commit
    """
    try:
        yield db
        db.commit()
    except LedgerError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("%s failed, transaction rolled back: %s", operation, e)
        raise StorageError(f"{operation} failed: storage error") from e
    except BaseException:
        db.rollback()
        raise


__all__ = ["ledger_transaction"]
