# Overview: Flask API routes for financial reports; manager only.

from flask import Blueprint, jsonify, request

from ..decorators import require_auth, require_role
from ..errors import InventoryError
from ..models.auth import ROLE_MANAGER
from ..services import reporting_service


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/profit-today")
@require_auth
@require_role(ROLE_MANAGER)
def profit_today_route():
    return jsonify(reporting_service.profit_today()), 200


@reports_bp.get("/commissions")
@require_auth
@require_role(ROLE_MANAGER)
def commissions_route():
    """
    Query args: start, end (ISO dates, inclusive) and percentage.
    """
    start = request.args.get("start")
    end = request.args.get("end")
    percentage = request.args.get("percentage")
    if not start or not end or percentage is None:
        return jsonify({"error": "start, end and percentage are required"}), 400

    try:
        return jsonify(reporting_service.sales_by_seller(start, end, percentage)), 200
    except InventoryError as e:
        return jsonify(e.to_dict()), e.status_code


@reports_bp.get("/top-products")
@require_auth
@require_role(ROLE_MANAGER)
def top_products_route():
    limit = request.args.get("limit", default=5, type=int)
    return jsonify({"items": reporting_service.top_products(limit)}), 200
