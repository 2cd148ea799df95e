# Overview: Product catalog; registration creates the product's stock rows.

from __future__ import annotations

from flask import current_app
from sqlalchemy import and_

from ..errors import ConflictError
from ..extensions import db
from ..models import (
    FIXED_WAREHOUSES,
    MAIN_WAREHOUSE_ID,
    AdjustmentReference,
    Product,
    StockEntry,
)
from ..models.ledger import KIND_ADJUSTMENT_IN
from . import movement_service, stock_ledger
from .concurrency import unit_of_work
from .lookup_service import require_product

UPDATABLE_FIELDS = ("code", "name", "sell_price_cents", "cost_price_cents")


def _ensure_code_available(session, code: str, *, exclude_id: int | None = None) -> None:
    q = session.query(Product).filter(Product.code == code)
    if exclude_id is not None:
        q = q.filter(Product.id != exclude_id)
    if q.first() is not None:
        raise ConflictError(f"Product code {code!r} already exists", details={"code": code})


def create_product(
    *,
    code: str,
    name: str,
    sell_price_cents: int = 0,
    cost_price_cents: int = 0,
    initial_stock: int = 0,
) -> Product:
    """
    Register a product with a zero stock row in every fixed warehouse.

    An initial stock is booked as an inbound adjustment movement so that
    the main-warehouse Kardex still opens at zero.
    """
    with unit_of_work() as session:
        _ensure_code_available(session, code)

        product = Product(
            code=code,
            name=name,
            sell_price_cents=sell_price_cents or 0,
            cost_price_cents=cost_price_cents or 0,
        )
        session.add(product)
        session.flush()

        for warehouse_id, _code, _name in FIXED_WAREHOUSES:
            stock_ledger.ensure_row(session, product.id, warehouse_id)

        if initial_stock:
            stock_ledger.apply_delta(session, product.id, MAIN_WAREHOUSE_ID, initial_stock)
            movement_service.append(
                session,
                product_id=product.id,
                warehouse_id=MAIN_WAREHOUSE_ID,
                kind=KIND_ADJUSTMENT_IN,
                quantity=initial_stock,
                reference=AdjustmentReference(),
                comment="Initial stock",
            )

    current_app.logger.info("Registered product %s (%s)", product.id, code)
    return product


def get_product(product_id: int) -> dict:
    """Product with its quantity in every warehouse."""
    product = require_product(db.session, product_id)
    stock = stock_ledger.stock_by_warehouse(db.session, product_id)
    return {
        **product.to_dict(),
        "stock": {str(warehouse_id): stock.get(warehouse_id, 0) for warehouse_id, _c, _n in FIXED_WAREHOUSES},
    }


def list_products() -> list[dict]:
    """All products with their main-warehouse quantity."""
    rows = (
        db.session.query(Product, StockEntry.quantity)
        .outerjoin(
            StockEntry,
            and_(StockEntry.product_id == Product.id, StockEntry.warehouse_id == MAIN_WAREHOUSE_ID),
        )
        .order_by(Product.name.asc(), Product.id.asc())
        .all()
    )
    return [{**product.to_dict(), "stock": quantity or 0} for product, quantity in rows]


def update_product(product_id: int, patch: dict) -> Product:
    """Edit catalog data. Stock is never touched here."""
    with unit_of_work() as session:
        product = require_product(session, product_id)
        if "code" in patch and patch["code"] != product.code:
            _ensure_code_available(session, patch["code"], exclude_id=product_id)
        for key in UPDATABLE_FIELDS:
            if key in patch and patch[key] is not None:
                setattr(product, key, patch[key])
    return product
