# Overview: Existence checks for entities referenced by stock operations.

from __future__ import annotations

from typing import Iterable

from ..errors import NotFoundError
from ..models import Customer, Product, Supplier, User, Warehouse


def require_product(session, product_id: int) -> Product:
    product = session.get(Product, product_id)
    if product is None:
        raise NotFoundError(f"Product {product_id} not found", details={"product_id": product_id})
    return product


def require_products(session, product_ids: Iterable[int]) -> dict[int, Product]:
    """Load every product in product_ids, or fail naming the lowest missing id."""
    wanted = set(product_ids)
    found = {p.id: p for p in session.query(Product).filter(Product.id.in_(wanted)).all()}
    missing = sorted(wanted - found.keys())
    if missing:
        raise NotFoundError(f"Product {missing[0]} not found", details={"product_ids": missing})
    return found


def require_user(session, user_id: int) -> User:
    user = session.get(User, user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} does not exist", details={"user_id": user_id})
    return user


def require_customer(session, customer_id: int) -> Customer:
    customer = session.get(Customer, customer_id)
    if customer is None:
        raise NotFoundError(f"Customer {customer_id} does not exist", details={"customer_id": customer_id})
    return customer


def require_supplier(session, supplier_id: int) -> Supplier:
    supplier = session.get(Supplier, supplier_id)
    if supplier is None:
        raise NotFoundError(f"Supplier {supplier_id} does not exist", details={"supplier_id": supplier_id})
    return supplier


def require_warehouse(session, warehouse_id: int) -> Warehouse:
    warehouse = session.get(Warehouse, warehouse_id)
    if warehouse is None:
        raise NotFoundError(f"Warehouse {warehouse_id} does not exist", details={"warehouse_id": warehouse_id})
    return warehouse
