from .catalog import (
    Warehouse,
    Product,
    StockEntry,
    FIXED_WAREHOUSES,
    MAIN_WAREHOUSE_ID,
    DAMAGED_WAREHOUSE_ID,
    IMMOBILIZED_WAREHOUSE_ID,
)
from .ledger import Movement, SaleReference, PurchaseReference, AdjustmentReference
from .documents import Sale, SaleLine, Purchase, PurchaseLine, Adjustment, AdjustmentLine
from .parties import Customer, Supplier
from .auth import User, SessionToken

__all__ = [
    'Warehouse', 'Product', 'StockEntry',
    'FIXED_WAREHOUSES', 'MAIN_WAREHOUSE_ID', 'DAMAGED_WAREHOUSE_ID', 'IMMOBILIZED_WAREHOUSE_ID',
    'Movement', 'SaleReference', 'PurchaseReference', 'AdjustmentReference',
    'Sale', 'SaleLine', 'Purchase', 'PurchaseLine', 'Adjustment', 'AdjustmentLine',
    'Customer', 'Supplier',
    'User', 'SessionToken',
]
