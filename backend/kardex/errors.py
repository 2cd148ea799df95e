# Overview: Error taxonomy shared by the stock services and the HTTP layer.

"""
Every failure raised by a stock operation is one of these kinds.

Routes map them to HTTP responses through ``status_code`` and ``to_dict``;
anything else is an unexpected failure and becomes a 500.
"""


class InventoryError(Exception):
    """Base class for errors surfaced to callers with a readable message."""

    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.message, "details": self.details}


class ValidationError(InventoryError, ValueError):
    """400-level input problem."""


class ConflictError(InventoryError, ValueError):
    """409-level business rule conflict (e.g., duplicate product code)."""

    status_code = 409


class NotFoundError(InventoryError, LookupError):
    """A referenced seller, customer, supplier, product or warehouse is absent."""

    status_code = 404


class InsufficientStockError(InventoryError):
    """Withdrawal would take a stock row below zero while the policy forbids it."""

    status_code = 409

    def __init__(self, *, product_id: int, product_name: str, available: int, requested: int):
        super().__init__(
            f'Insufficient stock for "{product_name}". '
            f"Available: {available}, requested: {requested}",
            details={
                "product_id": product_id,
                "product_name": product_name,
                "available": available,
                "requested": requested,
            },
        )
        self.product_id = product_id
        self.product_name = product_name
        self.available = available
        self.requested = requested


class ConcurrencyError(InventoryError):
    """Lock-wait timeout or deadlock. The transaction was rolled back; retry it."""

    status_code = 503
    retriable = True


class PersistenceError(InventoryError):
    """Unexpected store failure. The transaction was rolled back."""

    status_code = 500


class LedgerInconsistencyError(InventoryError):
    """Replayed movements do not add up to the ledger quantity."""

    status_code = 409

    def __init__(self, *, product_id: int, warehouse_id: int, expected: int, actual: int):
        super().__init__(
            f"Movement history for product {product_id} in warehouse {warehouse_id} "
            f"closes at {expected} but the ledger holds {actual}",
            details={
                "product_id": product_id,
                "warehouse_id": warehouse_id,
                "replayed_balance": expected,
                "ledger_quantity": actual,
            },
        )
        self.product_id = product_id
        self.warehouse_id = warehouse_id
        self.expected = expected
        self.actual = actual
