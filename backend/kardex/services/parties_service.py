# Overview: Customers and suppliers referenced by sales and purchases.

from __future__ import annotations

from ..errors import ConflictError
from ..extensions import db
from ..models import Customer, Supplier


def _ensure_tax_id_free(model, tax_id: str | None) -> None:
    if tax_id and db.session.query(model).filter_by(tax_id=tax_id).first() is not None:
        raise ConflictError(f"Tax id {tax_id!r} already registered", details={"tax_id": tax_id})


def create_customer(*, business_name: str, tax_id: str | None = None) -> Customer:
    _ensure_tax_id_free(Customer, tax_id)
    customer = Customer(business_name=business_name, tax_id=tax_id)
    db.session.add(customer)
    db.session.commit()
    return customer


def list_customers() -> list[Customer]:
    return db.session.query(Customer).order_by(Customer.business_name.asc()).all()


def create_supplier(*, name: str, tax_id: str | None = None) -> Supplier:
    _ensure_tax_id_free(Supplier, tax_id)
    supplier = Supplier(name=name, tax_id=tax_id)
    db.session.add(supplier)
    db.session.commit()
    return supplier


def list_suppliers() -> list[Supplier]:
    return db.session.query(Supplier).order_by(Supplier.name.asc()).all()
