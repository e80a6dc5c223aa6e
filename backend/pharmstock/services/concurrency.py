# Overview: Transaction helpers shared by the stock, allocation, and ledger services.

from __future__ import annotations

import time

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import StockTrackerError, StorageError
from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for the read-check-write of a stock item or allocation.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute one unit of DB work, all-or-nothing.

    - OperationalError (locks, deadlocks) and StaleDataError (version_id
      conflicts) roll back and retry with exponential backoff; once attempts
      run out they surface as StorageError.
    - Business errors roll back and propagate unchanged.
    - Any other SQLAlchemyError rolls back and surfaces as StorageError.

    func must do its own commit; a failure at any point leaves nothing applied.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise StorageError("Storage is busy, please retry") from exc
            time.sleep(backoff_base * (2 ** attempt))
        except StockTrackerError:
            db.session.rollback()
            raise
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StorageError() from exc


def commit_with_retry(*, attempts: int = 3, backoff_base: float = 0.1):
    """Commit current session with retry handling."""
    def _op():
        db.session.commit()
    return run_with_retry(_op, attempts=attempts, backoff_base=backoff_base)
