# Overview: Kardex reconstruction; replays movements into a running balance for one product.

from __future__ import annotations

from flask import current_app

from ..errors import LedgerInconsistencyError
from ..models import MAIN_WAREHOUSE_ID, Movement, Purchase, Sale
from ..models.ledger import AdjustmentReference, PurchaseReference, SaleReference
from ..time_utils import to_utc_z
from . import movement_service, stock_ledger
from .concurrency import read_snapshot
from .lookup_service import require_product, require_warehouse

"""
Kardex semantics (authoritative)

- Stock rows start at zero and every change of quantity is a movement, so
  the opening balance of every trail is zero.
- The trail is walked forward, oldest movement first:
    balance_after = balance_before + movement.quantity
- Closure: the last balance_after must equal the ledger quantity. A
  mismatch means corrupted history and raises LedgerInconsistencyError
  instead of returning numbers nobody can trust.
- Reconstruction never writes.
"""

OPENING_BALANCE = 0


def _documents(session, movements: list[Movement]) -> tuple[dict[int, Sale], dict[int, Purchase]]:
    sale_ids = {m.reference.sale_id for m in movements if isinstance(m.reference, SaleReference)}
    purchase_ids = {m.reference.purchase_id for m in movements if isinstance(m.reference, PurchaseReference)}
    sales = {}
    purchases = {}
    if sale_ids:
        sales = {s.id: s for s in session.query(Sale).filter(Sale.id.in_(sale_ids)).all()}
    if purchase_ids:
        purchases = {p.id: p for p in session.query(Purchase).filter(Purchase.id.in_(purchase_ids)).all()}
    return sales, purchases


def describe(movement: Movement, sales: dict[int, Sale], purchases: dict[int, Purchase]) -> str:
    """Human-readable origin of a movement."""
    reference = movement.reference
    if isinstance(reference, SaleReference):
        sale = sales.get(reference.sale_id)
        customer = sale.customer.business_name if sale and sale.customer else "unknown"
        return f"Sale #{reference.sale_id} - Customer: {customer}"
    if isinstance(reference, PurchaseReference):
        purchase = purchases.get(reference.purchase_id)
        supplier = purchase.supplier.name if purchase and purchase.supplier else "unknown"
        return f"Purchase #{reference.purchase_id} - Supplier: {supplier}"
    if isinstance(reference, AdjustmentReference):
        return movement.comment or "Adjustment"
    raise TypeError(f"unhandled movement reference {reference!r}")


def reconstruct(product_id: int, warehouse_id: int = MAIN_WAREHOUSE_ID) -> dict:
    """
    Build the Kardex of one product in one warehouse.

    Returns the product summary, the current ledger quantity and the
    chronological trail with balance_before / balance_after, an
    ENTRADA / SALIDA direction and a description per movement.

    Raises:
        NotFoundError: product or warehouse does not exist
        LedgerInconsistencyError: the trail does not close at the ledger quantity
    """
    with read_snapshot() as session:
        product = require_product(session, product_id)
        require_warehouse(session, warehouse_id)

        current_stock = stock_ledger.read_shared(session, product_id, warehouse_id)
        movements = movement_service.history(session, product_id, warehouse_id)
        sales, purchases = _documents(session, movements)

        balance = OPENING_BALANCE
        trail = []
        for movement in movements:
            balance_before = balance
            balance += movement.quantity
            trail.append({
                "id": movement.id,
                "kind": movement.kind,
                "direction": movement.direction,
                "quantity": movement.quantity,
                "balance_before": balance_before,
                "balance_after": balance,
                "reference_kind": movement.reference_kind,
                "reference_id": movement.reference_id,
                "comment": movement.comment,
                "description": describe(movement, sales, purchases),
                "created_at": to_utc_z(movement.created_at),
            })

        if balance != current_stock:
            current_app.logger.error(
                "Kardex of product %s in warehouse %s closes at %s but ledger holds %s",
                product_id, warehouse_id, balance, current_stock,
            )
            raise LedgerInconsistencyError(
                product_id=product_id,
                warehouse_id=warehouse_id,
                expected=balance,
                actual=current_stock,
            )

        return {
            "product": product.to_dict(),
            "warehouse_id": warehouse_id,
            "current_stock": current_stock,
            "total_movements": len(trail),
            "movements": trail,
        }
