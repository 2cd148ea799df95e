# Overview: Movement recorder; append-only audit trail of every stock change.

from __future__ import annotations

from sqlalchemy import func

from ..models import Movement
from ..models.ledger import MOVEMENT_KINDS, MovementReference


def append(
    session,
    *,
    product_id: int,
    warehouse_id: int,
    kind: str,
    quantity: int,
    reference: MovementReference,
    comment: str | None = None,
) -> Movement:
    """
    Append one immutable movement in the caller's transaction.

    - No updates or deletes of existing movements exist anywhere.
    - quantity is signed (negative for stock leaving the warehouse).
    """
    if kind not in MOVEMENT_KINDS:
        raise ValueError(f"unknown movement kind: {kind!r}")

    movement = Movement(
        product_id=product_id,
        warehouse_id=warehouse_id,
        kind=kind,
        quantity=quantity,
        reference_kind=reference.kind,
        reference_id=reference.reference_id,
        comment=comment,
    )
    session.add(movement)
    session.flush()  # ensures movement.id is assigned without committing
    return movement


def history(session, product_id: int, warehouse_id: int | None = None) -> list[Movement]:
    """Movements of a product, oldest first; id breaks timestamp ties."""
    q = session.query(Movement).filter(Movement.product_id == product_id)
    if warehouse_id is not None:
        q = q.filter(Movement.warehouse_id == warehouse_id)
    return q.order_by(Movement.created_at.asc(), Movement.id.asc()).all()


def net_quantity(session, product_id: int, warehouse_id: int) -> int:
    total = session.query(func.coalesce(func.sum(Movement.quantity), 0)).filter(
        Movement.product_id == product_id,
        Movement.warehouse_id == warehouse_id,
    ).scalar()
    return int(total or 0)
