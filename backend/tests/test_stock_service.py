"""
Stock service and query surface tests.

Verifies:
- Creating an item records its opening quantity as an "add" movement
- Direct quantity edits are recorded as add/remove of the difference
- unique_number is globally unique
- Low-stock and expiring listings return exactly the matching items
"""

from datetime import timedelta

import pytest

from conftest import fresh
from pharmstock.errors import ConflictError, NotFoundError
from pharmstock.models import StockItem
from pharmstock.services import movement_service, stock_service
from pharmstock.time_utils import utcnow
from pharmstock.validation import MAX_WINDOW_DAYS, ValidationError


def test_create_records_opening_quantity(make_stock_item, admin):
    item = make_stock_item(quantity=100, name="Amoxicillin 500mg")

    assert item.quantity == 100
    assert item.created_by == admin.id
    movements = movement_service.list_movements_for_stock_item(item.id)
    assert [(m.type, m.quantity, m.performed_by) for m in movements] == [("add", 100, admin.id)]


def test_create_with_zero_quantity_writes_no_movement(make_stock_item):
    item = make_stock_item(quantity=0)
    assert movement_service.list_movements_for_stock_item(item.id) == []


def test_create_requires_name_and_unique_number(admin):
    with pytest.raises(ValidationError):
        stock_service.create_stock_item(data={"unique_number": "X-1"}, actor_id=admin.id)
    with pytest.raises(ValidationError):
        stock_service.create_stock_item(data={"name": "Thing"}, actor_id=admin.id)


def test_create_rejects_negative_quantity(admin):
    with pytest.raises(ValidationError):
        stock_service.create_stock_item(
            data={"name": "Thing", "unique_number": "X-1", "quantity": -1},
            actor_id=admin.id,
        )


def test_duplicate_unique_number_conflicts(make_stock_item, admin):
    make_stock_item(unique_number="PARA-001")
    with pytest.raises(ConflictError):
        stock_service.create_stock_item(
            data={"name": "Other", "unique_number": "PARA-001"},
            actor_id=admin.id,
        )


def test_lookup_by_unique_number(make_stock_item):
    item = make_stock_item(unique_number="IBU-200")
    assert stock_service.get_stock_item_by_unique_number("IBU-200").id == item.id
    with pytest.raises(NotFoundError):
        stock_service.get_stock_item_by_unique_number("NOPE")


def test_update_quantity_writes_add_and_remove(make_stock_item, admin):
    item = make_stock_item(quantity=50)

    stock_service.update_stock_item(stock_item_id=item.id, patch={"quantity": 80}, actor_id=admin.id)
    stock_service.update_stock_item(stock_item_id=item.id, patch={"quantity": 65}, actor_id=admin.id)

    assert fresh(StockItem, item.id).quantity == 65
    movements = movement_service.list_movements_for_stock_item(item.id)
    assert [(m.type, m.quantity) for m in movements] == [("add", 50), ("add", 30), ("remove", 15)]


def test_update_without_quantity_change_writes_no_movement(make_stock_item, admin):
    item = make_stock_item(quantity=10)
    updated = stock_service.update_stock_item(
        stock_item_id=item.id, patch={"category": "Analgesic"}, actor_id=admin.id,
    )
    assert updated.category == "Analgesic"
    assert len(movement_service.list_movements_for_stock_item(item.id)) == 1


def test_update_rejects_taken_unique_number_and_negative_quantity(make_stock_item, admin):
    first = make_stock_item(unique_number="A-1")
    second = make_stock_item(unique_number="B-1", quantity=7)

    with pytest.raises(ConflictError):
        stock_service.update_stock_item(
            stock_item_id=second.id, patch={"unique_number": first.unique_number}, actor_id=admin.id,
        )
    with pytest.raises(ValidationError):
        stock_service.update_stock_item(stock_item_id=second.id, patch={"quantity": -1}, actor_id=admin.id)

    assert fresh(StockItem, second.id).quantity == 7
    assert fresh(StockItem, second.id).unique_number == "B-1"


def test_update_unknown_item(admin):
    with pytest.raises(NotFoundError):
        stock_service.update_stock_item(stock_item_id=404, patch={"name": "x"}, actor_id=admin.id)


@pytest.fixture
def stocked(make_stock_item):
    return {q: make_stock_item(quantity=q) for q in (0, 5, 25, 26, 300)}


@pytest.mark.parametrize(
    "threshold,expected",
    [
        (0, [0]),
        (25, [0, 5, 25]),
        (10_000, [0, 5, 25, 26, 300]),
    ],
)
def test_low_stock_threshold(stocked, threshold, expected):
    items = stock_service.list_low_stock_items(threshold)
    assert sorted(i.quantity for i in items) == expected
    assert all(i.quantity <= threshold for i in items)


def test_low_stock_rejects_negative_threshold(stocked):
    with pytest.raises(ValidationError):
        stock_service.list_low_stock_items(-1)
    with pytest.raises(ValidationError):
        stock_service.list_low_stock_items("lots")


def test_expiring_window(make_stock_item):
    now = utcnow()
    expired = make_stock_item(expiry_date=now - timedelta(days=2))
    soon = make_stock_item(expiry_date=now + timedelta(days=10))
    later = make_stock_item(expiry_date=now + timedelta(days=90))
    make_stock_item()  # no expiry date

    in_30 = [i.id for i in stock_service.list_expiring_stock_items(30)]
    in_0 = [i.id for i in stock_service.list_expiring_stock_items(0)]
    in_365 = [i.id for i in stock_service.list_expiring_stock_items(365)]

    assert in_30 == [expired.id, soon.id]
    assert in_0 == [expired.id]
    assert in_365 == [expired.id, soon.id, later.id]


def test_low_stock_threshold_beyond_integer_range_returns_everything(stocked):
    items = stock_service.list_low_stock_items(10**20)
    assert sorted(i.quantity for i in items) == [0, 5, 25, 26, 300]


def test_expiring_window_is_bounded(make_stock_item):
    item = make_stock_item(expiry_date=utcnow() + timedelta(days=400))

    assert [i.id for i in stock_service.list_expiring_stock_items(MAX_WINDOW_DAYS)] == [item.id]
    with pytest.raises(ValidationError):
        stock_service.list_expiring_stock_items(MAX_WINDOW_DAYS + 1)
    with pytest.raises(ValidationError):
        stock_service.list_expiring_stock_items(5_000_000)
