"""
Purchase service - stock coming in from suppliers.

Every purchase line raises main-warehouse stock, appends an inbound movement
and overwrites the product's cost price with the line's unit cost
(last-cost policy: the most recent purchase defines the cost used by
profit reports).
"""

import time

from flask import current_app

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import MAIN_WAREHOUSE_ID, Purchase, PurchaseLine, PurchaseReference
from ..models.ledger import KIND_PURCHASE
from ..requests import PurchaseRequest
from . import movement_service, stock_ledger
from .concurrency import unit_of_work
from .lookup_service import require_products, require_supplier


def generate_invoice_reference() -> str:
    return f"PUR-INT-{int(time.time() * 1000)}"


def format_cents(cents: int) -> str:
    sign = "-" if cents < 0 else ""
    whole, fraction = divmod(abs(cents), 100)
    return f"{sign}{whole}.{fraction:02d}"


def record_purchase(request: PurchaseRequest) -> int:
    """
    Record a supplier purchase and return the new purchase id.

    Raises:
        ValidationError: no lines, non-positive quantity or negative cost
        NotFoundError: supplier or a product does not exist
        ConcurrencyError: a stock row stayed locked past the lock timeout
    """
    if not request.lines:
        raise ValidationError("A purchase needs at least one line")
    for line in request.lines:
        if line.quantity <= 0:
            raise ValidationError("quantity must be > 0", details={"product_id": line.product_id})
        if line.unit_cost_cents < 0:
            raise ValidationError("unit_cost_cents must be >= 0", details={"product_id": line.product_id})

    invoice_reference = request.invoice_reference or generate_invoice_reference()

    with unit_of_work() as session:
        require_supplier(session, request.supplier_id)
        products = require_products(session, (line.product_id for line in request.lines))

        stock_ledger.lock_rows(
            session,
            ((line.product_id, MAIN_WAREHOUSE_ID) for line in request.lines),
            create=True,
        )

        purchase = Purchase(
            supplier_id=request.supplier_id,
            total_cents=request.total_cents,
            payment_method=request.payment_method or "CASH",
            invoice_reference=invoice_reference,
        )
        session.add(purchase)
        session.flush()

        for line in request.lines:
            session.add(PurchaseLine(
                purchase_id=purchase.id,
                product_id=line.product_id,
                quantity=line.quantity,
                unit_cost_cents=line.unit_cost_cents,
                subtotal_cents=line.quantity * line.unit_cost_cents,
            ))

            products[line.product_id].cost_price_cents = line.unit_cost_cents

            stock_ledger.apply_delta(session, line.product_id, MAIN_WAREHOUSE_ID, line.quantity)
            movement_service.append(
                session,
                product_id=line.product_id,
                warehouse_id=MAIN_WAREHOUSE_ID,
                kind=KIND_PURCHASE,
                quantity=line.quantity,
                reference=PurchaseReference(purchase.id),
                comment=(
                    f"Invoice {invoice_reference}. "
                    f"Cost updated to {format_cents(line.unit_cost_cents)}"
                ),
            )

        purchase_id = purchase.id

    current_app.logger.info(
        "Recorded purchase %s (invoice %s) with %d line(s)",
        purchase_id, invoice_reference, len(request.lines),
    )
    return purchase_id


def get_purchase(purchase_id: int) -> dict:
    purchase = db.session.get(Purchase, purchase_id)
    if purchase is None:
        raise NotFoundError(f"Purchase {purchase_id} not found")
    return {"purchase": purchase.to_dict(), "lines": [line.to_dict() for line in purchase.lines]}
