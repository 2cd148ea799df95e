"""
Sales service - records a sale and its stock withdrawals as one unit of work.

A sale either produces its header, one line and one movement per requested
line and the matching stock decrements, or nothing at all.
"""

from flask import current_app

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import MAIN_WAREHOUSE_ID, Sale, SaleLine, SaleReference
from ..models.ledger import KIND_SALE
from ..requests import SaleRequest
from . import movement_service, stock_ledger
from .concurrency import unit_of_work
from .lookup_service import require_customer, require_products, require_user
from .stock_policy import StockPolicy


def _sale_comment(sale_id: int, override: bool) -> str:
    if override:
        return f"Sale #{sale_id} (negative stock allowed)"
    return f"Sale #{sale_id}"


def record_sale(request: SaleRequest) -> int:
    """
    Record a sale from the main warehouse and return the new sale id.

    Raises:
        ValidationError: no lines, or a non-positive quantity
        NotFoundError: seller, customer or a product does not exist
        InsufficientStockError: a line asks for more than is available and
            the request does not allow negative stock
        ConcurrencyError: a stock row stayed locked past the lock timeout
    """
    if not request.lines:
        raise ValidationError("A sale needs at least one line")
    for line in request.lines:
        if line.quantity <= 0:
            raise ValidationError("quantity must be > 0", details={"product_id": line.product_id})

    policy = StockPolicy.from_config(allow_negative_stock=request.allow_negative_stock)

    with unit_of_work() as session:
        require_user(session, request.seller_id)
        require_customer(session, request.customer_id)
        products = require_products(session, (line.product_id for line in request.lines))

        stock_ledger.lock_rows(session, ((line.product_id, MAIN_WAREHOUSE_ID) for line in request.lines))

        sale = Sale(
            customer_id=request.customer_id,
            seller_id=request.seller_id,
            subtotal_cents=request.subtotal_cents,
            tax_cents=request.tax_cents,
            total_cents=request.total_cents,
            allow_negative_stock=request.allow_negative_stock,
        )
        session.add(sale)
        session.flush()

        for line in request.lines:
            product = products[line.product_id]
            available = stock_ledger.lock_and_read(session, line.product_id, MAIN_WAREHOUSE_ID)
            policy.check_withdrawal(
                product_id=product.id,
                product_name=product.name,
                available=available,
                requested=line.quantity,
            )
            override = policy.is_override(available=available, requested=line.quantity)

            stock_ledger.ensure_row(session, line.product_id, MAIN_WAREHOUSE_ID)
            stock_ledger.apply_delta(session, line.product_id, MAIN_WAREHOUSE_ID, -line.quantity)

            session.add(SaleLine(
                sale_id=sale.id,
                product_id=line.product_id,
                quantity=line.quantity,
                unit_price_cents=line.unit_price_cents,
                line_total_cents=line.unit_price_cents * line.quantity,
            ))
            movement_service.append(
                session,
                product_id=line.product_id,
                warehouse_id=MAIN_WAREHOUSE_ID,
                kind=KIND_SALE,
                quantity=-line.quantity,
                reference=SaleReference(sale.id),
                comment=_sale_comment(sale.id, override),
            )
            if override:
                current_app.logger.warning(
                    "Sale %s takes product %s below zero (available %s, sold %s)",
                    sale.id, product.id, available, line.quantity,
                )

        sale_id = sale.id

    current_app.logger.info("Recorded sale %s with %d line(s)", sale_id, len(request.lines))
    return sale_id


def get_sale(sale_id: int) -> dict:
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise NotFoundError(f"Sale {sale_id} not found")
    return {"sale": sale.to_dict(), "lines": [line.to_dict() for line in sale.lines]}
