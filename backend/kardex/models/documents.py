from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class Sale(db.Model):
    """
    Sale header. Written once by the sales service in the same transaction
    as its lines, their movements and the stock decrements.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_seller_created", "seller_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    seller_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    # All amounts in cents, computed by the caller
    subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False, default=0)

    allow_negative_stock = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    customer = db.relationship("Customer")
    seller = db.relationship("User")
    lines = db.relationship("SaleLine", backref="sale", lazy=True, order_by="SaleLine.id")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "seller_id": self.seller_id,
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
            "allow_negative_stock": self.allow_negative_stock,
            "created_at": to_utc_z(self.created_at),
        }


class SaleLine(db.Model):
    __tablename__ = "sale_lines"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
        }


class Purchase(db.Model):
    __tablename__ = "purchases"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)
    total_cents = db.Column(db.Integer, nullable=False, default=0)
    payment_method = db.Column(db.String(32), nullable=False, default="CASH")
    invoice_reference = db.Column(db.String(64), nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    supplier = db.relationship("Supplier")
    lines = db.relationship("PurchaseLine", backref="purchase", lazy=True, order_by="PurchaseLine.id")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "supplier_id": self.supplier_id,
            "total_cents": self.total_cents,
            "payment_method": self.payment_method,
            "invoice_reference": self.invoice_reference,
            "created_at": to_utc_z(self.created_at),
        }


class PurchaseLine(db.Model):
    __tablename__ = "purchase_lines"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    purchase_id = db.Column(db.Integer, db.ForeignKey("purchases.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    unit_cost_cents = db.Column(db.Integer, nullable=False)
    subtotal_cents = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_id": self.purchase_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_cost_cents": self.unit_cost_cents,
            "subtotal_cents": self.subtotal_cents,
        }


class Adjustment(db.Model):
    """
    Manual stock correction (physical count, breakage, reclassification).

    Its movements carry no reference id; adjustment_lines.movement_id links
    each line to the movement it produced.
    """
    __tablename__ = "adjustments"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    reason = db.Column(db.String(255), nullable=False)
    allow_negative_stock = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    lines = db.relationship("AdjustmentLine", backref="adjustment", lazy=True, order_by="AdjustmentLine.id")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "reason": self.reason,
            "allow_negative_stock": self.allow_negative_stock,
            "created_at": to_utc_z(self.created_at),
        }


class AdjustmentLine(db.Model):
    __tablename__ = "adjustment_lines"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    adjustment_id = db.Column(db.Integer, db.ForeignKey("adjustments.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False)
    direction = db.Column(db.String(8), nullable=False)  # ENTRADA / SALIDA
    quantity = db.Column(db.Integer, nullable=False)  # magnitude, always > 0
    movement_id = db.Column(db.Integer, db.ForeignKey("movements.id"), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "adjustment_id": self.adjustment_id,
            "product_id": self.product_id,
            "warehouse_id": self.warehouse_id,
            "direction": self.direction,
            "quantity": self.quantity,
            "movement_id": self.movement_id,
        }
