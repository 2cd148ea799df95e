from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


MAIN_WAREHOUSE_ID = 1
DAMAGED_WAREHOUSE_ID = 2
IMMOBILIZED_WAREHOUSE_ID = 3

# (id, code, name) of the fixed stock pools. Seeded at bootstrap, never
# created or destroyed by stock operations.
FIXED_WAREHOUSES = (
    (MAIN_WAREHOUSE_ID, "MAIN", "Main (sellable)"),
    (DAMAGED_WAREHOUSE_ID, "DAMAGED", "Damaged goods"),
    (IMMOBILIZED_WAREHOUSE_ID, "IMMOBILIZED", "Immobilized"),
)


class Warehouse(db.Model):
    __tablename__ = "warehouses"

    id = db.Column(db.Integer, primary_key=True, autoincrement=False)
    code = db.Column(db.String(32), nullable=False, unique=True)
    name = db.Column(db.String(120), nullable=False)

    def to_dict(self) -> dict:
        return {"id": self.id, "code": self.code, "name": self.name}


class Product(db.Model):
    """
    Product master data.

    cost_price_cents follows a last-cost policy: every purchase line
    overwrites it with the line's unit cost.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), nullable=False, unique=True)
    name = db.Column(db.String(255), nullable=False)

    # Authoritative storage in cents
    sell_price_cents = db.Column(db.Integer, nullable=False, default=0)
    cost_price_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<Product id={self.id} code={self.code!r} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "sell_price_cents": self.sell_price_cents,
            "cost_price_cents": self.cost_price_cents,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockEntry(db.Model):
    """
    Current quantity of one product in one warehouse.

    Quantity is signed: it only goes below zero when the caller of a sale or
    adjustment explicitly allowed negative stock. Only the stock ledger
    service writes this table, and only while holding the row lock.
    """
    __tablename__ = "stock_entries"
    __table_args__ = (
        db.UniqueConstraint("product_id", "warehouse_id", name="uq_stock_entries_product_warehouse"),
        db.Index("ix_stock_entries_warehouse_quantity", "warehouse_id", "quantity"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=0)

    product = db.relationship("Product", backref=db.backref("stock_entries", lazy=True))
    warehouse = db.relationship("Warehouse")

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "warehouse_id": self.warehouse_id,
            "quantity": self.quantity,
        }
