"""
Allocation API tests.

Verifies:
- 100 -> allocate 30 -> 70 pending -> cancel -> 100, over HTTP
- Over-allocation returns 409 insufficient_stock
- Medical Reps see only their own allocations; Admin sees all
- Invalid transitions return 400
"""

import pytest

from pharmstock.permissions import Role


def _stock_quantity(client, headers, item_id):
    return client.get(f"/api/stock/{item_id}", headers=headers).json["quantity"]


def test_allocate_and_cancel_round_trip(client, headers_for, make_stock_item, rep):
    item = make_stock_item(quantity=100)
    headers = headers_for(Role.SALES_MANAGER)

    created = client.post(
        "/api/allocations",
        json={"stock_item_id": item.id, "user_id": rep.id, "quantity": 30},
        headers=headers,
    )
    assert created.status_code == 201
    assert created.json["status"] == "pending"
    assert created.json["user_id"] == rep.id
    assert _stock_quantity(client, headers, item.id) == 70

    cancelled = client.put(
        f"/api/allocations/{created.json['id']}/status",
        json={"status": "cancelled"},
        headers=headers,
    )
    assert cancelled.status_code == 200
    assert cancelled.json["status"] == "cancelled"
    assert _stock_quantity(client, headers, item.id) == 100


def test_over_allocation_returns_insufficient_stock(client, headers_for, make_stock_item, rep):
    item = make_stock_item(quantity=5)
    headers = headers_for(Role.MARKETER)

    resp = client.post(
        "/api/allocations",
        json={"stock_item_id": item.id, "user_id": rep.id, "quantity": 6},
        headers=headers,
    )
    assert resp.status_code == 409
    assert resp.json["error"] == "insufficient_stock"
    assert _stock_quantity(client, headers, item.id) == 5


@pytest.mark.parametrize(
    "body,status",
    [
        ({"user_id": 1, "quantity": 1}, 400),
        ({"stock_item_id": "one", "user_id": 1, "quantity": 1}, 400),
        ({"stock_item_id": 1, "user_id": 1, "quantity": 0}, 400),
        ({"stock_item_id": 1, "user_id": 1, "quantity": 2.5}, 400),
        ({"stock_item_id": 999, "user_id": 1, "quantity": 1}, 404),
    ],
)
def test_create_allocation_input_errors(client, headers_for, make_stock_item, body, status):
    make_stock_item(quantity=10)
    resp = client.post("/api/allocations", json=body, headers=headers_for(Role.ADMIN))
    assert resp.status_code == status


def test_invalid_status_and_transition(client, headers_for, make_stock_item, rep):
    item = make_stock_item(quantity=10)
    headers = headers_for(Role.ADMIN)
    allocation_id = client.post(
        "/api/allocations",
        json={"stock_item_id": item.id, "user_id": rep.id, "quantity": 3},
        headers=headers,
    ).json["id"]

    bad = client.put(f"/api/allocations/{allocation_id}/status", json={"status": "lost"}, headers=headers)
    assert bad.status_code == 400

    client.put(f"/api/allocations/{allocation_id}/status", json={"status": "cancelled"}, headers=headers)
    revive = client.put(f"/api/allocations/{allocation_id}/status", json={"status": "pending"}, headers=headers)
    assert revive.status_code == 400
    assert _stock_quantity(client, headers, item.id) == 10

    missing = client.put("/api/allocations/999/status", json={"status": "received"}, headers=headers)
    assert missing.status_code == 404


def test_medical_rep_sees_only_own_allocations(client, headers_for, make_stock_item, make_user, rep):
    other = make_user("rep_two")
    item = make_stock_item(quantity=50)
    admin_headers = headers_for(Role.ADMIN)
    for recipient in (rep, other, rep):
        client.post(
            "/api/allocations",
            json={"stock_item_id": item.id, "user_id": recipient.id, "quantity": 1},
            headers=admin_headers,
        )

    rep_view = client.get("/api/allocations", headers=headers_for(Role.MEDICAL_REP)).json
    admin_view = client.get("/api/allocations", headers=admin_headers).json

    assert len(rep_view) == 2
    assert {a["user_id"] for a in rep_view} == {rep.id}
    assert len(admin_view) == 3

    by_user = client.get(f"/api/allocations/user/{other.id}", headers=admin_headers).json
    assert [a["user_id"] for a in by_user] == [other.id]
