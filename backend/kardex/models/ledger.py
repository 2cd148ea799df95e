from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from ..extensions import db
from ..time_utils import to_utc_z, utcnow

"""
Movement ledger invariants (authoritative)

- Append-only: a movement is never updated or deleted.
- quantity is signed: positive for stock coming in, negative for stock going out.
- For every (product, warehouse), SUM(quantity) equals stock_entries.quantity.
- Chronological order is (created_at, id); id breaks timestamp ties.
"""

KIND_SALE = "SALE"
KIND_PURCHASE = "PURCHASE"
KIND_ADJUSTMENT_IN = "ADJUSTMENT_IN"
KIND_ADJUSTMENT_OUT = "ADJUSTMENT_OUT"

MOVEMENT_KINDS = {KIND_SALE, KIND_PURCHASE, KIND_ADJUSTMENT_IN, KIND_ADJUSTMENT_OUT}
INBOUND_KINDS = {KIND_PURCHASE, KIND_ADJUSTMENT_IN}

DIRECTION_IN = "ENTRADA"
DIRECTION_OUT = "SALIDA"


@dataclass(frozen=True)
class SaleReference:
    sale_id: int
    kind = "sale"

    @property
    def reference_id(self) -> int:
        return self.sale_id


@dataclass(frozen=True)
class PurchaseReference:
    purchase_id: int
    kind = "purchase"

    @property
    def reference_id(self) -> int:
        return self.purchase_id


@dataclass(frozen=True)
class AdjustmentReference:
    kind = "adjustment"

    @property
    def reference_id(self) -> None:
        return None


MovementReference = Union[SaleReference, PurchaseReference, AdjustmentReference]


def reference_from_columns(kind: str, reference_id: int | None) -> MovementReference:
    if kind == SaleReference.kind:
        return SaleReference(reference_id)
    if kind == PurchaseReference.kind:
        return PurchaseReference(reference_id)
    if kind == AdjustmentReference.kind:
        return AdjustmentReference()
    raise ValueError(f"unknown movement reference kind: {kind!r}")


class Movement(db.Model):
    __tablename__ = "movements"
    __table_args__ = (
        db.CheckConstraint(
            "kind IN ('SALE', 'PURCHASE', 'ADJUSTMENT_IN', 'ADJUSTMENT_OUT')",
            name="ck_movements_kind",
        ),
        db.CheckConstraint(
            "reference_kind IN ('sale', 'purchase', 'adjustment')",
            name="ck_movements_reference_kind",
        ),
        db.Index("ix_movements_product_warehouse_created", "product_id", "warehouse_id", "created_at", "id"),
        db.Index("ix_movements_reference", "reference_kind", "reference_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False)

    kind = db.Column(db.String(16), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    reference_kind = db.Column(db.String(16), nullable=False)
    reference_id = db.Column(db.Integer, nullable=True)

    comment = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    @property
    def reference(self) -> MovementReference:
        return reference_from_columns(self.reference_kind, self.reference_id)

    @property
    def direction(self) -> str:
        return DIRECTION_IN if self.kind in INBOUND_KINDS else DIRECTION_OUT

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "warehouse_id": self.warehouse_id,
            "kind": self.kind,
            "quantity": self.quantity,
            "reference_kind": self.reference_kind,
            "reference_id": self.reference_id,
            "comment": self.comment,
            "created_at": to_utc_z(self.created_at),
        }
