# Overview: Stock policy; negative-stock permission and low-stock thresholds.

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app, has_app_context

from ..errors import InsufficientStockError

DEFAULT_LOW_STOCK_THRESHOLD = 5


@dataclass(frozen=True)
class StockPolicy:
    """
    Business decisions about stock levels, kept out of the coordinator.

    allow_negative_stock comes from the request (per sale / adjustment);
    low_stock_threshold from configuration.
    """
    allow_negative_stock: bool = False
    low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD

    @classmethod
    def from_config(cls, *, allow_negative_stock: bool = False) -> "StockPolicy":
        threshold = DEFAULT_LOW_STOCK_THRESHOLD
        if has_app_context():
            threshold = int(current_app.config.get("LOW_STOCK_THRESHOLD", DEFAULT_LOW_STOCK_THRESHOLD))
        return cls(allow_negative_stock=allow_negative_stock, low_stock_threshold=threshold)

    def check_withdrawal(self, *, product_id: int, product_name: str, available: int, requested: int) -> None:
        """Raise InsufficientStockError unless the withdrawal is allowed."""
        if not self.allow_negative_stock and available < requested:
            raise InsufficientStockError(
                product_id=product_id,
                product_name=product_name,
                available=available,
                requested=requested,
            )

    def is_override(self, *, available: int, requested: int) -> bool:
        """True when a permitted withdrawal takes stock below zero."""
        return self.allow_negative_stock and available < requested

    def is_low(self, quantity: int) -> bool:
        return quantity <= self.low_stock_threshold

    def missing_units(self, quantity: int) -> int:
        return max(self.low_stock_threshold - quantity, 0)
