# Overview: Flask API routes for the product catalog; parses input and returns JSON responses.

# backend/kardex/routes/products.py
"""
Product catalog routes.

SECURITY: All routes require authentication.
- Read operations: any authenticated user
- Write operations: manager role
"""
from flask import Blueprint, current_app, request

from ..decorators import require_auth, require_role
from ..errors import InventoryError
from ..models import Product
from ..models.auth import ROLE_MANAGER
from ..services import products_service
from ..validation import ModelValidationPolicy, coerce_int, enforce_rules_product, validate_payload

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"code", "name", "sell_price_cents", "cost_price_cents"},
    required_on_create={"code", "name"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
def list_products():
    """All products with their main-warehouse stock."""
    return {"items": products_service.list_products()}


@products_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    try:
        return products_service.get_product(product_id)
    except InventoryError as e:
        return e.to_dict(), e.status_code


@products_bp.post("")
@require_auth
@require_role(ROLE_MANAGER)
def create_product_route():
    """
    Register a product.

    initial_stock (optional) is booked into the main warehouse as an
    inbound adjustment movement.
    """
    payload = dict(request.get_json(silent=True) or {})
    initial_stock_raw = payload.pop("initial_stock", None)

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        if initial_stock_raw is not None:
            patch["initial_stock"] = coerce_int(initial_stock_raw, "initial_stock")
        enforce_rules_product(patch)
        created = products_service.create_product(**patch)
    except InventoryError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create product")
        return {"error": "Internal server error"}, 500

    return products_service.get_product(created.id), 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_role(ROLE_MANAGER)
def update_product_route(product_id: int):
    """Edit catalog fields. Stock is changed through purchases and adjustments only."""
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
        products_service.update_product(product_id, patch)
    except InventoryError as e:
        return e.to_dict(), e.status_code

    return products_service.get_product(product_id)
