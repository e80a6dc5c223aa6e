# Overview: Service-layer operations for the movement ledger; encapsulates business logic and database work.

from __future__ import annotations

from ..extensions import db
from ..models import Movement
from pharmstock.time_utils import utcnow
"""
Movement Ledger Invariants (authoritative)

- Append-only history of stock quantity changes.
- No business validation here; callers decide what to record.
- Movements written by a service are flushed inside the caller's DB
  transaction, so the record commits (or rolls back) with the quantity change.
- quantity is unsigned; the direction is carried by type.
- No updates or deletes of existing movements.
"""


def record_movement(
    *,
    stock_item_id: int,
    quantity: int,
    type: str,
    performed_by: int,
    from_user_id: int | None = None,
    to_user_id: int | None = None,
    commit: bool = True,
) -> Movement:
    """
    Append a movement record and return it with its id and performed_at set.

    commit=False flushes only, for use inside another service's transaction.
    """
    movement = Movement(
        stock_item_id=stock_item_id,
        quantity=quantity,
        type=type,
        from_user_id=from_user_id,
        to_user_id=to_user_id,
        performed_by=performed_by,
        performed_at=utcnow(),
    )
    db.session.add(movement)
    if commit:
        db.session.commit()
    else:
        db.session.flush()  # ensures movement.id is assigned without committing
    return movement


def list_movements() -> list[Movement]:
    return (
        db.session.query(Movement)
        .order_by(Movement.performed_at, Movement.id)
        .all()
    )


def list_movements_for_stock_item(stock_item_id: int) -> list[Movement]:
    return (
        db.session.query(Movement)
        .filter(Movement.stock_item_id == stock_item_id)
        .order_by(Movement.performed_at, Movement.id)
        .all()
    )
