# Overview: Request objects consumed by the transaction coordinator.

from __future__ import annotations

from dataclasses import dataclass

from .models.catalog import MAIN_WAREHOUSE_ID
from .models.ledger import DIRECTION_IN, DIRECTION_OUT


@dataclass(frozen=True)
class SaleLineRequest:
    product_id: int
    quantity: int
    unit_price_cents: int


@dataclass(frozen=True)
class SaleRequest:
    customer_id: int
    seller_id: int
    lines: tuple[SaleLineRequest, ...]
    subtotal_cents: int = 0
    tax_cents: int = 0
    total_cents: int = 0
    allow_negative_stock: bool = False


@dataclass(frozen=True)
class PurchaseLineRequest:
    product_id: int
    quantity: int
    unit_cost_cents: int


@dataclass(frozen=True)
class PurchaseRequest:
    supplier_id: int
    lines: tuple[PurchaseLineRequest, ...]
    total_cents: int = 0
    payment_method: str = "CASH"
    invoice_reference: str | None = None


@dataclass(frozen=True)
class AdjustmentLineRequest:
    product_id: int
    quantity: int  # magnitude, >= 0
    direction: str  # ENTRADA / SALIDA
    warehouse_id: int = MAIN_WAREHOUSE_ID

    @property
    def signed_quantity(self) -> int:
        return self.quantity if self.direction == DIRECTION_IN else -self.quantity

    @property
    def is_withdrawal(self) -> bool:
        return self.direction == DIRECTION_OUT


@dataclass(frozen=True)
class AdjustmentRequest:
    lines: tuple[AdjustmentLineRequest, ...]
    reason: str = "Manual adjustment"
    user_id: int | None = None
    allow_negative_stock: bool = False
