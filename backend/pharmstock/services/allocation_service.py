# backend/pharmstock/services/allocation_service.py
"""
Allocation engine.

WHY: Move units of a stock item to a recipient with a traceable lifecycle.
Allocating takes units out of the item's free pool; cancelling returns them.

LIFECYCLE:
1. pending: allocation created, item quantity decremented, "allocate" movement written
2. received: recipient confirmed receipt; stock stays decremented
3. cancelled: quantity restored onto the item, "deallocate" movement written

TRANSITIONS:
- same status -> same status: no-op (cancelling twice never restores twice)
- pending -> received
- pending -> cancelled, received -> cancelled (both restore stock)
- anything out of cancelled, and received -> pending: rejected

CONSISTENCY:
- The decrement is a conditional UPDATE (quantity >= :amount); zero rows
  affected means another writer got there first and the request fails with
  InsufficientStockError.
- Status changes are compare-and-set on the current status, so concurrent
  cancels restore stock exactly once.
- Allocation row, quantity change and movement commit in one transaction.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy import update
from sqlalchemy.orm.exc import StaleDataError

from ..errors import InsufficientStockError, NotFoundError
from ..extensions import db
from ..models import (
    Allocation,
    StockItem,
    User,
    ALLOCATION_STATUS_CANCELLED,
    ALLOCATION_STATUS_PENDING,
    ALLOCATION_STATUS_RECEIVED,
    ALLOCATION_STATUSES,
    MOVEMENT_ALLOCATE,
    MOVEMENT_DEALLOCATE,
)
from ..validation import ValidationError, coerce_int, enforce_rules_allocation
from pharmstock.time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry
from .movement_service import record_movement
from .permission_service import allocation_scope_for


# (current, requested) pairs that are never allowed
_FORBIDDEN_TRANSITIONS = {
    (ALLOCATION_STATUS_CANCELLED, ALLOCATION_STATUS_PENDING),
    (ALLOCATION_STATUS_CANCELLED, ALLOCATION_STATUS_RECEIVED),
    (ALLOCATION_STATUS_RECEIVED, ALLOCATION_STATUS_PENDING),
}


def _take_stock(stock_item_id: int, quantity: int) -> None:
    """Atomically remove quantity from the free pool or raise InsufficientStockError."""
    result = db.session.execute(
        update(StockItem)
        .where(StockItem.id == stock_item_id, StockItem.quantity >= quantity)
        .values(
            quantity=StockItem.quantity - quantity,
            version_id=StockItem.version_id + 1,
            updated_at=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise InsufficientStockError("Not enough stock available")


def _return_stock(stock_item_id: int, quantity: int) -> None:
    result = db.session.execute(
        update(StockItem)
        .where(StockItem.id == stock_item_id)
        .values(
            quantity=StockItem.quantity + quantity,
            version_id=StockItem.version_id + 1,
            updated_at=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise NotFoundError("Stock item not found")


def get_allocation(allocation_id: int) -> Allocation:
    allocation = db.session.get(Allocation, allocation_id)
    if allocation is None:
        raise NotFoundError("Allocation not found")
    return allocation


def create_allocation(
    *,
    stock_item_id: int,
    recipient_user_id: int,
    quantity: int,
    actor_id: int,
) -> Allocation:
    """
    Allocate quantity units of a stock item to a recipient.

    Raises:
        ValidationError: quantity is not an integer in 1..MAX_QUANTITY
        NotFoundError: stock item or recipient does not exist
        InsufficientStockError: quantity exceeds the item's current quantity
    """
    quantity = coerce_int(quantity, "quantity")
    enforce_rules_allocation({"quantity": quantity})

    def _op():
        item = db.session.get(StockItem, stock_item_id)
        if item is None:
            raise NotFoundError("Stock item not found")
        if db.session.get(User, recipient_user_id) is None:
            raise NotFoundError("Recipient user not found")

        if quantity > item.quantity:
            raise InsufficientStockError(
                f"Not enough stock available (requested {quantity}, available {item.quantity})"
            )

        _take_stock(stock_item_id, quantity)

        allocation = Allocation(
            stock_item_id=stock_item_id,
            user_id=recipient_user_id,
            quantity=quantity,
            status=ALLOCATION_STATUS_PENDING,
            allocated_by=actor_id,
            allocated_at=utcnow(),
        )
        db.session.add(allocation)
        db.session.flush()

        record_movement(
            stock_item_id=stock_item_id,
            quantity=quantity,
            type=MOVEMENT_ALLOCATE,
            to_user_id=recipient_user_id,
            performed_by=actor_id,
            commit=False,
        )

        db.session.commit()
        return allocation

    allocation = run_with_retry(_op)
    current_app.logger.info(
        "Allocation %s: %s units of stock item %s to user %s by user %s",
        allocation.id, quantity, stock_item_id, recipient_user_id, actor_id,
    )
    return allocation


def update_allocation_status(*, allocation_id: int, new_status: str, actor_id: int) -> Allocation:
    """
    Move an allocation to new_status.

    Cancelling (from pending or received) restores the allocated quantity
    onto the stock item and records a "deallocate" movement. Requesting the
    current status is a no-op.

    Raises:
        ValidationError: unknown status, or a transition out of a terminal state
        NotFoundError: allocation does not exist
    """
    if new_status not in ALLOCATION_STATUSES:
        raise ValidationError("Invalid status")

    def _op():
        allocation = lock_for_update(
            db.session.query(Allocation).filter_by(id=allocation_id)
        ).first()
        if allocation is None:
            raise NotFoundError("Allocation not found")

        current = allocation.status
        if current == new_status:
            db.session.commit()  # release the row lock
            return allocation, False

        if (current, new_status) in _FORBIDDEN_TRANSITIONS:
            raise ValidationError(f"Cannot change allocation status from {current} to {new_status}")

        now = utcnow()
        result = db.session.execute(
            update(Allocation)
            .where(Allocation.id == allocation_id, Allocation.status == current)
            .values(status=new_status, status_changed_by=actor_id, status_changed_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            # Someone else moved it first; re-read and re-apply the rules
            raise StaleDataError(f"Allocation {allocation_id} status changed concurrently")

        if new_status == ALLOCATION_STATUS_CANCELLED:
            _return_stock(allocation.stock_item_id, allocation.quantity)
            record_movement(
                stock_item_id=allocation.stock_item_id,
                quantity=allocation.quantity,
                type=MOVEMENT_DEALLOCATE,
                from_user_id=allocation.user_id,
                performed_by=actor_id,
                commit=False,
            )

        db.session.commit()
        db.session.refresh(allocation)
        return allocation, True

    allocation, changed = run_with_retry(_op)
    if changed:
        current_app.logger.info(
            "Allocation %s moved to %s by user %s", allocation.id, allocation.status, actor_id,
        )
    return allocation


def list_allocations() -> list[Allocation]:
    return db.session.query(Allocation).order_by(Allocation.allocated_at, Allocation.id).all()


def list_allocations_for_user(user_id: int) -> list[Allocation]:
    """Allocations where user_id is the recipient."""
    return (
        db.session.query(Allocation)
        .filter(Allocation.user_id == user_id)
        .order_by(Allocation.allocated_at, Allocation.id)
        .all()
    )


def list_allocations_for_actor(user: User) -> list[Allocation]:
    """
    Allocations visible to an actor.

    Self-scoped roles (Medical Rep) see only their own; everyone else sees all.
    """
    scoped_user_id = allocation_scope_for(user)
    if scoped_user_id is not None:
        return list_allocations_for_user(scoped_user_id)
    return list_allocations()


def count_allocations_by_status() -> dict[str, int]:
    counts = {status: 0 for status in ALLOCATION_STATUSES}
    rows = (
        db.session.query(Allocation.status, db.func.count(Allocation.id))
        .group_by(Allocation.status)
        .all()
    )
    for status, count in rows:
        counts[status] = int(count)
    return counts
