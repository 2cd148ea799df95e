# Overview: Flask API routes for customers and suppliers.

from flask import Blueprint, request

from ..decorators import require_auth, require_role
from ..errors import InventoryError
from ..models import Customer, Supplier
from ..models.auth import ROLE_MANAGER
from ..services import parties_service
from ..validation import ModelValidationPolicy, validate_payload

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"business_name", "tax_id"},
    required_on_create={"business_name"},
)

SUPPLIER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "tax_id"},
    required_on_create={"name"},
)

parties_bp = Blueprint("parties", __name__, url_prefix="/api")


@parties_bp.get("/customers")
@require_auth
def list_customers_route():
    return {"items": [c.to_dict() for c in parties_service.list_customers()]}


@parties_bp.post("/customers")
@require_auth
def create_customer_route():
    try:
        patch = validate_payload(
            model=Customer,
            payload=request.get_json(silent=True),
            policy=CUSTOMER_POLICY,
            partial=False,
        )
        customer = parties_service.create_customer(**patch)
    except InventoryError as e:
        return e.to_dict(), e.status_code
    return customer.to_dict(), 201


@parties_bp.get("/suppliers")
@require_auth
def list_suppliers_route():
    return {"items": [s.to_dict() for s in parties_service.list_suppliers()]}


@parties_bp.post("/suppliers")
@require_auth
@require_role(ROLE_MANAGER)
def create_supplier_route():
    try:
        patch = validate_payload(
            model=Supplier,
            payload=request.get_json(silent=True),
            policy=SUPPLIER_POLICY,
            partial=False,
        )
        supplier = parties_service.create_supplier(**patch)
    except InventoryError as e:
        return e.to_dict(), e.status_code
    return supplier.to_dict(), 201
