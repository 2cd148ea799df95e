"""
Adjustment service - manual stock corrections in any warehouse.

Each line moves stock in (ENTRADA) or out (SALIDA) of one warehouse. Rows
that do not exist yet are created at zero under lock before the policy is
evaluated. Adjustment movements carry no reference id; the comment records
the reason and the acting user.
"""

from flask import current_app

from ..errors import ValidationError
from ..models import Adjustment, AdjustmentLine, AdjustmentReference
from ..models.ledger import DIRECTION_IN, DIRECTION_OUT, KIND_ADJUSTMENT_IN, KIND_ADJUSTMENT_OUT
from ..requests import AdjustmentRequest
from . import movement_service, stock_ledger
from .concurrency import unit_of_work
from .lookup_service import require_products, require_user, require_warehouse
from .stock_policy import StockPolicy


def _validate_lines(request: AdjustmentRequest) -> None:
    if not request.lines:
        raise ValidationError("No adjustment lines were provided")
    for line in request.lines:
        if not line.product_id:
            raise ValidationError("Invalid adjustment line: product_id and a numeric quantity are required")
        if not isinstance(line.quantity, int) or isinstance(line.quantity, bool) or line.quantity < 0:
            raise ValidationError(
                "Invalid adjustment line: product_id and a numeric quantity are required",
                details={"product_id": line.product_id},
            )
        if line.direction not in (DIRECTION_IN, DIRECTION_OUT):
            raise ValidationError(f"Unknown adjustment kind {line.direction!r}")


def _comment(request: AdjustmentRequest, override: bool) -> str:
    actor = request.user_id if request.user_id is not None else "system"
    comment = f"Adjustment: {request.reason}. User: {actor}"
    if override:
        comment += " (negative stock allowed)"
    return comment[:255]


def record_adjustment(request: AdjustmentRequest) -> int:
    """
    Apply every adjustment line atomically and return how many were processed.

    Raises:
        ValidationError: no lines, or a malformed line
        NotFoundError: user (when given), product or warehouse does not exist
        InsufficientStockError: a SALIDA line exceeds available stock and
            negative stock is not allowed
        ConcurrencyError: a stock row stayed locked past the lock timeout
    """
    _validate_lines(request)
    policy = StockPolicy.from_config(allow_negative_stock=request.allow_negative_stock)

    with unit_of_work() as session:
        if request.user_id is not None:
            require_user(session, request.user_id)
        products = require_products(session, (line.product_id for line in request.lines))
        for warehouse_id in sorted({line.warehouse_id for line in request.lines}):
            require_warehouse(session, warehouse_id)

        stock_ledger.lock_rows(
            session,
            ((line.product_id, line.warehouse_id) for line in request.lines),
            create=True,
        )

        adjustment = Adjustment(
            user_id=request.user_id,
            reason=request.reason,
            allow_negative_stock=request.allow_negative_stock,
        )
        session.add(adjustment)
        session.flush()

        for line in request.lines:
            available = stock_ledger.lock_and_read(session, line.product_id, line.warehouse_id)
            override = False
            if line.is_withdrawal:
                product = products[line.product_id]
                policy.check_withdrawal(
                    product_id=product.id,
                    product_name=product.name,
                    available=available,
                    requested=line.quantity,
                )
                override = policy.is_override(available=available, requested=line.quantity)

            stock_ledger.apply_delta(session, line.product_id, line.warehouse_id, line.signed_quantity)
            movement = movement_service.append(
                session,
                product_id=line.product_id,
                warehouse_id=line.warehouse_id,
                kind=KIND_ADJUSTMENT_OUT if line.is_withdrawal else KIND_ADJUSTMENT_IN,
                quantity=line.signed_quantity,
                reference=AdjustmentReference(),
                comment=_comment(request, override),
            )
            session.add(AdjustmentLine(
                adjustment_id=adjustment.id,
                product_id=line.product_id,
                warehouse_id=line.warehouse_id,
                direction=line.direction,
                quantity=line.quantity,
                movement_id=movement.id,
            ))

        adjustment_id = adjustment.id

    current_app.logger.info(
        "Recorded adjustment %s with %d line(s): %s",
        adjustment_id, len(request.lines), request.reason,
    )
    return len(request.lines)
