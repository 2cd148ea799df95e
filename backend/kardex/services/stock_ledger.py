# Overview: Stock ledger; current quantity per (product, warehouse) with locked reads and deltas.

from __future__ import annotations

from typing import Iterable

from ..models import StockEntry
from .concurrency import lock_for_update, locked_rows

"""
Stock ledger invariants (authoritative)

- At most one stock_entries row per (product_id, warehouse_id).
- A row is locked (lock_and_read / ensure_row / lock_rows) before it is
  changed, and apply_delta refuses rows not locked in this unit of work.
- When several rows are needed, they are locked in ascending
  (product_id, warehouse_id) order so that two transactions can never wait
  on each other in a cycle.
"""


def _locked_query(session, product_id: int, warehouse_id: int):
    return lock_for_update(
        session.query(StockEntry)
        .filter_by(product_id=product_id, warehouse_id=warehouse_id)
        .populate_existing()
    )


def lock_and_read(session, product_id: int, warehouse_id: int) -> int:
    """
    Lock the row and return its quantity.

    A missing row reads as 0 and is not created.
    """
    entry = _locked_query(session, product_id, warehouse_id).first()
    if entry is None:
        return 0
    locked_rows(session).add((product_id, warehouse_id))
    return entry.quantity


def ensure_row(session, product_id: int, warehouse_id: int) -> StockEntry:
    """Return the locked row, inserting it at zero first if it does not exist. Idempotent."""
    entry = _locked_query(session, product_id, warehouse_id).first()
    if entry is None:
        entry = StockEntry(product_id=product_id, warehouse_id=warehouse_id, quantity=0)
        session.add(entry)
        session.flush()
    locked_rows(session).add((product_id, warehouse_id))
    return entry


def lock_rows(session, keys: Iterable[tuple[int, int]], *, create: bool = False) -> None:
    """
    Lock every (product_id, warehouse_id) in keys in the global order.

    With create=True missing rows are inserted at zero (see ensure_row).
    """
    for product_id, warehouse_id in sorted(set(keys)):
        if create:
            ensure_row(session, product_id, warehouse_id)
        else:
            lock_and_read(session, product_id, warehouse_id)


def apply_delta(session, product_id: int, warehouse_id: int, delta: int) -> int:
    """Add delta (possibly negative) to a row locked in this unit of work. Returns the new quantity."""
    if (product_id, warehouse_id) not in locked_rows(session):
        raise RuntimeError(
            f"stock row ({product_id}, {warehouse_id}) must be locked before it is changed"
        )
    entry = session.query(StockEntry).filter_by(product_id=product_id, warehouse_id=warehouse_id).one()
    entry.quantity = entry.quantity + delta
    session.flush()
    return entry.quantity


def read_shared(session, product_id: int, warehouse_id: int) -> int:
    """
    Read the quantity while blocking writers of the row until the
    transaction ends (SELECT ... FOR SHARE). Creates nothing.
    """
    entry = (
        session.query(StockEntry)
        .filter_by(product_id=product_id, warehouse_id=warehouse_id)
        .populate_existing()
        .with_for_update(read=True)
        .first()
    )
    return entry.quantity if entry else 0


def get_quantity(session, product_id: int, warehouse_id: int) -> int:
    """Unlocked read for reporting. 0 when the row does not exist."""
    entry = session.query(StockEntry).filter_by(product_id=product_id, warehouse_id=warehouse_id).first()
    return entry.quantity if entry else 0


def stock_by_warehouse(session, product_id: int) -> dict[int, int]:
    rows = session.query(StockEntry).filter_by(product_id=product_id).all()
    return {row.warehouse_id: row.quantity for row in rows}
