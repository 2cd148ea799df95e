from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError
from .models.catalog import MAIN_WAREHOUSE_ID
from .models.ledger import DIRECTION_IN, DIRECTION_OUT
from .requests import (
    AdjustmentLineRequest,
    AdjustmentRequest,
    PurchaseLineRequest,
    PurchaseRequest,
    SaleLineRequest,
    SaleRequest,
)


# Maximum amount: 9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_AMOUNT_CENTS = 999_999_999

DIRECTIONS = {DIRECTION_IN, DIRECTION_OUT}


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def coerce_int(value: Any, field_name: str) -> int:
    """
    Strict integer coercion - rejects floats, booleans and scientific notation.
    """
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field_name} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{field_name} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{field_name} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field_name} must be an integer")
    # Whole floats from JSON (e.g. 4.0) are accepted, fractional ones are not
    if isinstance(value, float):
        if value.is_integer():
            return int(value)
        raise ValidationError(f"{field_name} must be an integer, not a decimal")
    raise ValidationError(f"{field_name} must be an integer")


def coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    # fallback: truthiness
    return bool(value)


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return coerce_int(value, col.key)

    if isinstance(coltype, Boolean):
        return coerce_bool(value)

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    # Default: leave as-is
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def _check_amount(value: int, field_name: str) -> int:
    if value < 0:
        raise ValidationError(f"{field_name} must be >= 0")
    if value > MAX_AMOUNT_CENTS:
        raise ValidationError(f"{field_name} cannot exceed {MAX_AMOUNT_CENTS}")
    return value


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    for key in ("sell_price_cents", "cost_price_cents"):
        if key in patch and patch[key] is not None:
            _check_amount(patch[key], key)
    if "initial_stock" in patch and patch["initial_stock"] < 0:
        raise ValidationError("initial_stock must be >= 0")


# --- transaction payloads -------------------------------------------------


def _require_dict(payload: Any) -> dict:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload


def _required_id(data: dict, key: str) -> int:
    if data.get(key) is None:
        raise ValidationError(f"{key} is required")
    value = coerce_int(data[key], key)
    if value <= 0:
        raise ValidationError(f"{key} must be a positive id")
    return value


def _optional_amount(data: dict, key: str) -> int:
    if data.get(key) is None:
        return 0
    return _check_amount(coerce_int(data[key], key), key)


def _lines(data: dict, key: str = "lines") -> list:
    lines = data.get(key)
    if not isinstance(lines, list) or not lines:
        raise ValidationError(f"{key} must be a non-empty list")
    for raw in lines:
        if not isinstance(raw, dict):
            raise ValidationError(f"each entry of {key} must be an object")
    return lines


def _positive_quantity(raw: dict) -> int:
    if raw.get("quantity") is None:
        raise ValidationError("quantity is required")
    quantity = coerce_int(raw["quantity"], "quantity")
    if quantity <= 0:
        raise ValidationError("quantity must be > 0")
    return quantity


def parse_sale_request(payload: Any) -> SaleRequest:
    data = _require_dict(payload)
    lines = tuple(
        SaleLineRequest(
            product_id=_required_id(raw, "product_id"),
            quantity=_positive_quantity(raw),
            unit_price_cents=_optional_amount(raw, "unit_price_cents"),
        )
        for raw in _lines(data)
    )
    return SaleRequest(
        customer_id=_required_id(data, "customer_id"),
        seller_id=_required_id(data, "seller_id"),
        lines=lines,
        subtotal_cents=_optional_amount(data, "subtotal_cents"),
        tax_cents=_optional_amount(data, "tax_cents"),
        total_cents=_optional_amount(data, "total_cents"),
        allow_negative_stock=coerce_bool(data.get("allow_negative_stock", False)),
    )


def parse_purchase_request(payload: Any) -> PurchaseRequest:
    data = _require_dict(payload)
    lines = []
    for raw in _lines(data):
        if raw.get("unit_cost_cents") is None:
            raise ValidationError("unit_cost_cents is required")
        lines.append(
            PurchaseLineRequest(
                product_id=_required_id(raw, "product_id"),
                quantity=_positive_quantity(raw),
                unit_cost_cents=_check_amount(coerce_int(raw["unit_cost_cents"], "unit_cost_cents"), "unit_cost_cents"),
            )
        )

    payment_method = str(data.get("payment_method") or "CASH").strip().upper()
    invoice_reference = data.get("invoice_reference")
    if invoice_reference is not None:
        invoice_reference = str(invoice_reference).strip() or None
        if invoice_reference and len(invoice_reference) > 64:
            raise ValidationError("invoice_reference exceeds max length 64")

    return PurchaseRequest(
        supplier_id=_required_id(data, "supplier_id"),
        lines=tuple(lines),
        total_cents=_optional_amount(data, "total_cents"),
        payment_method=payment_method,
        invoice_reference=invoice_reference,
    )


def parse_adjustment_line(raw: dict) -> AdjustmentLineRequest:
    """
    Direction comes from "kind" (ENTRADA / SALIDA) when given, otherwise
    from the sign of quantity. The stored quantity is always the magnitude.
    """
    if not raw.get("product_id"):
        raise ValidationError("Invalid adjustment line: product_id and a numeric quantity are required")
    if raw.get("quantity") is None:
        raise ValidationError("Invalid adjustment line: product_id and a numeric quantity are required")
    product_id = coerce_int(raw["product_id"], "product_id")
    quantity = coerce_int(raw["quantity"], "quantity")

    kind = raw.get("kind")
    if kind is None or str(kind).strip() == "":
        direction = DIRECTION_IN if quantity >= 0 else DIRECTION_OUT
    else:
        direction = str(kind).strip().upper()
        if direction not in DIRECTIONS:
            raise ValidationError(f"kind must be one of: {', '.join(sorted(DIRECTIONS))}")

    warehouse_raw = raw.get("warehouse_id")
    warehouse_id = MAIN_WAREHOUSE_ID if warehouse_raw in (None, "") else coerce_int(warehouse_raw, "warehouse_id")

    return AdjustmentLineRequest(
        product_id=product_id,
        quantity=abs(quantity),
        direction=direction,
        warehouse_id=warehouse_id,
    )


def parse_adjustment_request(payload: Any) -> AdjustmentRequest:
    data = _require_dict(payload)
    lines = data.get("lines")
    if not isinstance(lines, list) or not lines:
        raise ValidationError("No adjustment lines were provided")
    parsed = []
    for raw in lines:
        if not isinstance(raw, dict):
            raise ValidationError("each adjustment line must be an object")
        parsed.append(parse_adjustment_line(raw))

    user_id = data.get("user_id")
    reason = str(data.get("reason") or "").strip() or "Manual adjustment"
    if len(reason) > 200:
        raise ValidationError("reason exceeds max length 200")

    return AdjustmentRequest(
        lines=tuple(parsed),
        reason=reason,
        user_id=coerce_int(user_id, "user_id") if user_id not in (None, "") else None,
        allow_negative_stock=coerce_bool(data.get("allow_negative_stock", False)),
    )
