# Overview: Flask API routes for stock operations; parses input and returns JSON responses.

# backend/kardex/routes/inventory.py
"""
Stock mutation and Kardex routes.

SECURITY: All routes require authentication.
- Sales: any authenticated user
- Purchases and adjustments: manager role
"""
from flask import Blueprint, current_app, jsonify, request

from ..decorators import require_auth, require_role
from ..errors import InventoryError
from ..models import MAIN_WAREHOUSE_ID
from ..models.auth import ROLE_MANAGER
from ..services import adjustment_service, kardex_service, purchase_service, reporting_service, sales_service
from ..services.concurrency import run_with_retry
from ..validation import coerce_int, parse_adjustment_request, parse_purchase_request, parse_sale_request


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.post("/sales")
@require_auth
def record_sale_route():
    """
    Record a sale against the main warehouse.

    409 when a line exceeds available stock and allow_negative_stock is false.
    """
    try:
        sale_request = parse_sale_request(request.get_json(silent=True))
        sale_id = run_with_retry(lambda: sales_service.record_sale(sale_request))
        return jsonify({"sale_id": sale_id}), 201
    except InventoryError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record sale")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/sales/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    try:
        return jsonify(sales_service.get_sale(sale_id)), 200
    except InventoryError as e:
        return jsonify(e.to_dict()), e.status_code


@inventory_bp.post("/purchases")
@require_auth
@require_role(ROLE_MANAGER)
def record_purchase_route():
    """Record a supplier purchase; raises stock and updates cost prices."""
    try:
        purchase_request = parse_purchase_request(request.get_json(silent=True))
        purchase_id = run_with_retry(lambda: purchase_service.record_purchase(purchase_request))
        return jsonify({"purchase_id": purchase_id}), 201
    except InventoryError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record purchase")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/purchases/<int:purchase_id>")
@require_auth
@require_role(ROLE_MANAGER)
def get_purchase_route(purchase_id: int):
    try:
        return jsonify(purchase_service.get_purchase(purchase_id)), 200
    except InventoryError as e:
        return jsonify(e.to_dict()), e.status_code


@inventory_bp.post("/adjustments")
@require_auth
@require_role(ROLE_MANAGER)
def record_adjustment_route():
    """Physical count corrections and reclassifications between warehouses."""
    try:
        adjustment_request = parse_adjustment_request(request.get_json(silent=True))
        processed = run_with_retry(lambda: adjustment_service.record_adjustment(adjustment_request))
        return jsonify({"lines_processed": processed}), 200
    except InventoryError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record adjustment")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/kardex/<int:product_id>")
@require_auth
def kardex_route(product_id: int):
    """
    Chronological movement history of a product with running balance.

    Optional query arg warehouse_id (defaults to the main warehouse).
    """
    try:
        raw = request.args.get("warehouse_id")
        warehouse_id = MAIN_WAREHOUSE_ID if raw in (None, "") else coerce_int(raw, "warehouse_id")
        return jsonify(kardex_service.reconstruct(product_id, warehouse_id)), 200
    except InventoryError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to reconstruct kardex")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/critical-stock")
@require_auth
def critical_stock_route():
    report = reporting_service.critical_stock()
    return jsonify({"count": len(report), "items": report}), 200
