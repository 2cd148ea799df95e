# Overview: Transaction scoping, row locking and retry for stock mutations.

from __future__ import annotations

import time
from contextlib import contextmanager

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..errors import ConcurrencyError, PersistenceError

"""
Unit-of-work rules (authoritative)

- Every stock mutation runs inside exactly one unit_of_work().
- Stock rows are locked before they are read or changed and stay locked
  until the unit of work commits or rolls back.
- Any exception inside the unit of work rolls everything back before it
  propagates; there is no partial commit.
- Lock-wait timeouts and deadlocks surface as ConcurrencyError (retriable),
  any other store failure as PersistenceError.
"""

LOCKED_ROWS_KEY = "locked_stock_rows"

_LOCK_FAILURE_MARKERS = (
    "database is locked",
    "database table is locked",
    "deadlock",
    "lock wait timeout",
    "could not obtain lock",
    "could not serialize",
    "lock timeout",
)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; unit_of_work() takes the
    database write lock up front there instead.
    """
    return query.with_for_update()


def is_lock_failure(exc: Exception) -> bool:
    if isinstance(exc, StaleDataError):
        return True
    message = str(getattr(exc, "orig", None) or exc).lower()
    if isinstance(exc, OperationalError):
        return any(marker in message for marker in _LOCK_FAILURE_MARKERS)
    if isinstance(exc, IntegrityError):
        # Two transactions inserting the same missing stock row at once
        return "stock_entries" in message
    return False


def translate_store_error(exc: Exception) -> ConcurrencyError | PersistenceError:
    if is_lock_failure(exc):
        return ConcurrencyError(
            "Stock is locked by another transaction; retry the operation",
            details={"cause": type(exc).__name__},
        )
    return PersistenceError(
        "Unexpected storage failure",
        details={"cause": type(exc).__name__},
    )


def locked_rows(session) -> set[tuple[int, int]]:
    """(product_id, warehouse_id) pairs locked by the current unit of work."""
    return session.info.setdefault(LOCKED_ROWS_KEY, set())


def _begin(session, statement: str) -> None:
    # Pending objects are flushed inside the new transaction, not before it
    with session.no_autoflush:
        session.execute(text(statement))


@contextmanager
def unit_of_work():
    """
    Run a block as one atomic transaction and yield its session handle.

    The handle is passed explicitly into every ledger and recorder call made
    inside the block.
    """
    session = db.session
    session.info[LOCKED_ROWS_KEY] = set()
    try:
        if db.engine.dialect.name == "sqlite":
            _begin(session, "BEGIN IMMEDIATE")
        yield session
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        error = translate_store_error(exc)
        if isinstance(error, ConcurrencyError):
            current_app.logger.warning("Stock transaction rolled back on lock failure: %s", exc)
        else:
            current_app.logger.error("Stock transaction rolled back on store failure: %s", exc)
        raise error from exc
    except Exception:
        session.rollback()
        raise
    finally:
        session.info.pop(LOCKED_ROWS_KEY, None)


@contextmanager
def read_snapshot():
    """
    Run several reads against one consistent view of the store.

    Nothing is written; the transaction is always rolled back, so a session
    holding unsaved changes is refused before anything is discarded.
    """
    session = db.session
    if session.new or session.dirty or session.deleted:
        raise PersistenceError("Session has unsaved changes; commit or roll back before reading a snapshot")
    try:
        if db.engine.dialect.name == "sqlite":
            _begin(session, "BEGIN")
        yield session
    except SQLAlchemyError as exc:
        raise translate_store_error(exc) from exc
    finally:
        session.rollback()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Call func, retrying when it fails with ConcurrencyError.

    func must open its own unit_of_work so every attempt starts from a
    clean, rolled-back session.
    """
    for attempt in range(attempts):
        try:
            return func()
        except ConcurrencyError:
            if attempt >= attempts - 1:
                raise
            current_app.logger.info("Retrying stock operation after lock failure (attempt %d)", attempt + 1)
            time.sleep(backoff_base * (2 ** attempt))
