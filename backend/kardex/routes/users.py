# Overview: Flask API routes for staff accounts; manager only.

from flask import Blueprint, g, request

from ..decorators import require_auth, require_role
from ..errors import InventoryError, ValidationError
from ..models.auth import ROLE_MANAGER, ROLE_SELLER
from ..services import auth_service


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_role(ROLE_MANAGER)
def list_users_route():
    return {"items": [u.to_dict() for u in auth_service.list_users()]}


@users_bp.post("")
@require_auth
@require_role(ROLE_MANAGER)
def create_user_route():
    data = request.get_json(silent=True) or {}
    try:
        user = auth_service.create_user(
            username=data.get("username"),
            password=data.get("password"),
            name=data.get("name"),
            role=data.get("role") or ROLE_SELLER,
        )
    except InventoryError as e:
        return e.to_dict(), e.status_code
    return user.to_dict(), 201


@users_bp.put("/<int:user_id>")
@require_auth
@require_role(ROLE_MANAGER)
def update_user_route(user_id: int):
    data = request.get_json(silent=True) or {}
    unknown = set(data) - {"username", "name", "role", "password"}
    try:
        if unknown:
            raise ValidationError(f"Field not allowed: {sorted(unknown)[0]}")
        user = auth_service.update_user(
            user_id,
            username=data.get("username"),
            name=data.get("name"),
            role=data.get("role"),
            password=data.get("password"),
        )
    except InventoryError as e:
        return e.to_dict(), e.status_code
    return user.to_dict()


@users_bp.delete("/<int:user_id>")
@require_auth
@require_role(ROLE_MANAGER)
def delete_user_route(user_id: int):
    """Deactivates the account; sales keep pointing at it."""
    if user_id == g.current_user.id:
        return {"error": "You cannot deactivate your own account"}, 400
    try:
        user = auth_service.delete_user(user_id)
    except InventoryError as e:
        return e.to_dict(), e.status_code
    return user.to_dict()
