# Overview: Read-only reports over stock, sales and sellers.

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from sqlalchemy import and_, func

from ..errors import ValidationError
from ..extensions import db
from ..models import MAIN_WAREHOUSE_ID, Product, Sale, SaleLine, StockEntry, User
from ..time_utils import day_range, parse_iso_datetime, start_of_day, to_utc_z, utcnow
from .stock_policy import StockPolicy


def critical_stock(policy: StockPolicy | None = None) -> list[dict]:
    """
    Main-warehouse stock at or below the low-stock threshold, lowest first,
    with the units missing to reach the threshold and what they would cost
    at the current cost price.
    """
    policy = policy or StockPolicy.from_config()
    rows = (
        db.session.query(Product, StockEntry.quantity)
        .join(StockEntry, StockEntry.product_id == Product.id)
        .filter(StockEntry.warehouse_id == MAIN_WAREHOUSE_ID)
        .order_by(StockEntry.quantity.asc(), Product.id.asc())
        .all()
    )
    report = []
    for product, quantity in rows:
        if not policy.is_low(quantity):
            continue
        missing = policy.missing_units(quantity)
        report.append({
            "id": product.id,
            "code": product.code,
            "name": product.name,
            "stock": quantity,
            "missing_units": missing,
            "replenishment_cost_cents": missing * product.cost_price_cents,
        })
    return report


def profit_today(now: datetime | None = None) -> dict:
    """
    Sales count, revenue, cost of goods (at current cost price) and net
    profit for the current UTC day.
    """
    start, end = day_range(now or utcnow())
    revenue_expr = func.coalesce(func.sum(SaleLine.quantity * SaleLine.unit_price_cents), 0)
    cost_expr = func.coalesce(func.sum(SaleLine.quantity * Product.cost_price_cents), 0)

    row = (
        db.session.query(
            func.count(func.distinct(Sale.id)).label("sales"),
            revenue_expr.label("revenue"),
            cost_expr.label("cost"),
        )
        .select_from(Sale)
        .join(SaleLine, SaleLine.sale_id == Sale.id)
        .join(Product, Product.id == SaleLine.product_id)
        .filter(Sale.created_at >= start, Sale.created_at < end)
        .one()
    )
    revenue = int(row.revenue or 0)
    cost = int(row.cost or 0)
    return {
        "date": start.date().isoformat(),
        "total_sales": int(row.sales or 0),
        "revenue_cents": revenue,
        "cost_of_goods_cents": cost,
        "net_profit_cents": revenue - cost,
    }


def _parse_day(value: str | None, name: str) -> datetime:
    try:
        parsed = parse_iso_datetime(value)
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationError(f"{name} must be an ISO-8601 date")
    return start_of_day(parsed)


def _parse_percentage(value) -> Decimal:
    try:
        percentage = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError("percentage must be a number")
    if not percentage.is_finite() or percentage < 0 or percentage > 100:
        raise ValidationError("percentage must be between 0 and 100")
    return percentage


def commission_cents(total_cents: int, percentage: Decimal) -> int:
    """Commission rounded to the nearest cent (half-up)."""
    amount = Decimal(total_cents) * percentage / Decimal(100)
    return int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def sales_by_seller(start: str | None, end: str | None, percentage) -> dict:
    """
    Per-seller sale count, gross total and commission for sales made between
    start and end (both inclusive, whole days). Sellers without sales are
    listed with zeros.
    """
    start_dt = _parse_day(start, "start")
    end_dt = _parse_day(end, "end") + timedelta(days=1)
    if end_dt <= start_dt:
        raise ValidationError("end must not be before start")
    pct = _parse_percentage(percentage)

    rows = (
        db.session.query(
            User.id,
            User.name,
            func.count(Sale.id).label("sales"),
            func.coalesce(func.sum(Sale.total_cents), 0).label("total"),
        )
        .outerjoin(
            Sale,
            and_(Sale.seller_id == User.id, Sale.created_at >= start_dt, Sale.created_at < end_dt),
        )
        .group_by(User.id, User.name)
        .order_by(User.id.asc())
        .all()
    )

    return {
        "period": {"from": to_utc_z(start_dt), "to": to_utc_z(end_dt)},
        "percentage": str(pct),
        "sellers": [
            {
                "user_id": user_id,
                "seller": name,
                "sales": int(sales or 0),
                "gross_total_cents": int(total or 0),
                "commission_cents": commission_cents(int(total or 0), pct),
            }
            for user_id, name, sales, total in rows
        ],
    }


def top_products(limit: int = 5) -> list[dict]:
    """Best-selling products by revenue."""
    limit = max(1, min(int(limit), 100))
    revenue = func.sum(SaleLine.quantity * SaleLine.unit_price_cents)
    rows = (
        db.session.query(
            Product.id,
            Product.name,
            func.sum(SaleLine.quantity).label("units"),
            revenue.label("revenue"),
        )
        .join(SaleLine, SaleLine.product_id == Product.id)
        .group_by(Product.id, Product.name)
        .order_by(revenue.desc(), Product.id.asc())
        .limit(limit)
        .all()
    )
    return [
        {
            "product_id": product_id,
            "product": name,
            "units_sold": int(units or 0),
            "revenue_cents": int(total or 0),
        }
        for product_id, name, units, total in rows
    ]
