# Overview: Service-layer operations for stock items; encapsulates business logic and database work.

# backend/pharmstock/services/stock_service.py

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, NotFoundError
from ..extensions import db
from ..models import StockItem, MOVEMENT_ADD, MOVEMENT_REMOVE
from ..validation import (
    MAX_QUANTITY,
    ValidationError,
    coerce_non_negative_int,
    coerce_window_days,
    enforce_rules_stock_item,
)
from pharmstock.time_utils import days_ahead
from .concurrency import lock_for_update, run_with_retry
from .movement_service import record_movement
"""
Stock Item Invariants (authoritative)

- StockItem.quantity is the free pool and is never negative.
- unique_number is globally unique.
- Every quantity change made here writes a Movement in the same DB
  transaction: add/remove carrying abs(new - old).
- Direct edits lock the row (FOR UPDATE where supported) and rely on the
  version_id optimistic counter; conflicts are retried by run_with_retry.
"""


STOCK_ITEM_FIELDS = ("name", "unique_number", "category", "quantity", "expiry_date", "image_url")


def _get_stock_item_or_404(stock_item_id: int, *, lock: bool = False) -> StockItem:
    query = db.session.query(StockItem).filter_by(id=stock_item_id)
    if lock:
        query = lock_for_update(query)
    item = query.first()
    if item is None:
        raise NotFoundError("Stock item not found")
    return item


def _ensure_unique_number_free(unique_number: str, *, exclude_id: int | None = None) -> None:
    query = db.session.query(StockItem.id).filter(StockItem.unique_number == unique_number)
    if exclude_id is not None:
        query = query.filter(StockItem.id != exclude_id)
    if query.first() is not None:
        raise ConflictError("Item with this unique number already exists")


def get_stock_item(stock_item_id: int) -> StockItem:
    return _get_stock_item_or_404(stock_item_id)


def get_stock_item_by_unique_number(unique_number: str) -> StockItem:
    item = db.session.query(StockItem).filter_by(unique_number=unique_number).first()
    if item is None:
        raise NotFoundError("Stock item not found")
    return item


def list_stock_items() -> list[StockItem]:
    return db.session.query(StockItem).order_by(StockItem.name, StockItem.id).all()


def create_stock_item(*, data: dict, actor_id: int) -> StockItem:
    """
    Create a stock item and record its opening quantity.

    data is a validated patch (see routes.stock); quantity defaults to 0.
    An opening quantity > 0 is recorded as an "add" movement.
    """
    for field in ("name", "unique_number"):
        if not data.get(field):
            raise ValidationError(f"{field} is required")

    fields = {k: data.get(k) for k in STOCK_ITEM_FIELDS if k in data}
    fields.setdefault("quantity", 0)
    enforce_rules_stock_item(fields)

    def _op():
        _ensure_unique_number_free(fields["unique_number"])

        item = StockItem(created_by=actor_id, **fields)
        db.session.add(item)
        try:
            db.session.flush()
        except IntegrityError as exc:
            # Lost a race on the unique_number constraint
            raise ConflictError("Item with this unique number already exists") from exc

        if item.quantity > 0:
            record_movement(
                stock_item_id=item.id,
                quantity=item.quantity,
                type=MOVEMENT_ADD,
                performed_by=actor_id,
                commit=False,
            )

        db.session.commit()
        return item

    item = run_with_retry(_op)
    current_app.logger.info(
        "Stock item %s (%s) created by user %s with quantity %s",
        item.id, item.unique_number, actor_id, item.quantity,
    )
    return item


def update_stock_item(*, stock_item_id: int, patch: dict, actor_id: int) -> StockItem:
    """
    Partially update a stock item.

    A quantity change is a direct addition/removal and is recorded in the
    movement ledger as add/remove of abs(new - old).
    """
    unknown = set(patch) - set(STOCK_ITEM_FIELDS)
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(sorted(unknown))}")
    enforce_rules_stock_item(patch)

    def _op():
        item = _get_stock_item_or_404(stock_item_id, lock=True)

        if "unique_number" in patch and patch["unique_number"] != item.unique_number:
            if not patch["unique_number"]:
                raise ValidationError("unique_number cannot be blank")
            _ensure_unique_number_free(patch["unique_number"], exclude_id=item.id)
        if "name" in patch and not patch["name"]:
            raise ValidationError("name cannot be blank")

        old_quantity = item.quantity
        for key, value in patch.items():
            setattr(item, key, value)

        delta = item.quantity - old_quantity
        if delta != 0:
            record_movement(
                stock_item_id=item.id,
                quantity=abs(delta),
                type=MOVEMENT_ADD if delta > 0 else MOVEMENT_REMOVE,
                performed_by=actor_id,
                commit=False,
            )

        # Flush raises StaleDataError if an allocation changed the row meanwhile
        db.session.flush()
        db.session.commit()
        return item, delta

    item, delta = run_with_retry(_op)
    if delta:
        current_app.logger.info(
            "Stock item %s quantity changed by %+d to %s by user %s",
            item.id, delta, item.quantity, actor_id,
        )
    return item


def list_expiring_stock_items(days) -> list[StockItem]:
    """
    Items whose expiry_date is set and falls on/before now + days.

    Already-expired items are included.
    """
    days = coerce_window_days(days, "days")
    cutoff = days_ahead(days)
    return (
        db.session.query(StockItem)
        .filter(StockItem.expiry_date.isnot(None), StockItem.expiry_date <= cutoff)
        .order_by(StockItem.expiry_date, StockItem.id)
        .all()
    )


def list_low_stock_items(threshold) -> list[StockItem]:
    """Items whose quantity is at or below threshold."""
    threshold = coerce_non_negative_int(threshold, "threshold")
    # No quantity exceeds MAX_QUANTITY, so clamping keeps the result exact
    bound = min(threshold, MAX_QUANTITY)
    return (
        db.session.query(StockItem)
        .filter(StockItem.quantity <= bound)
        .order_by(StockItem.quantity, StockItem.id)
        .all()
    )
