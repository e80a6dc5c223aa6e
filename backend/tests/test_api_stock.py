"""
Stock API tests.

Verifies:
- Create/read/update round trips through JSON with snake_case keys
- Validation errors return 400 with {"error", "message"}
- Duplicate unique numbers return 409
- Low-stock and expiring endpoints
"""

from datetime import timedelta

from pharmstock.permissions import Role
from pharmstock.time_utils import utcnow


def test_create_and_fetch_stock_item(client, headers_for):
    headers = headers_for(Role.STOCK_MANAGER)
    resp = client.post(
        "/api/stock",
        json={
            "name": "Paracetamol 500mg",
            "unique_number": "PARA-500",
            "category": "Analgesic",
            "quantity": 100,
            "expiry_date": "2030-01-31",
        },
        headers=headers,
    )
    assert resp.status_code == 201
    item = resp.json
    assert item["quantity"] == 100
    assert item["expiry_date"] == "2030-01-31T00:00:00Z"

    by_id = client.get(f"/api/stock/{item['id']}", headers=headers)
    by_number = client.get("/api/stock/unique/PARA-500", headers=headers)
    assert by_id.json["name"] == "Paracetamol 500mg"
    assert by_number.json["id"] == item["id"]


def test_create_validation_errors(client, headers_for):
    headers = headers_for(Role.ADMIN)

    missing = client.post("/api/stock", json={"name": "No number"}, headers=headers)
    assert missing.status_code == 400
    assert missing.json["error"] == "invalid_input"
    assert "unique_number" in missing.json["message"]

    negative = client.post(
        "/api/stock", json={"name": "x", "unique_number": "N-1", "quantity": -5}, headers=headers,
    )
    assert negative.status_code == 400

    unknown = client.post(
        "/api/stock", json={"name": "x", "unique_number": "N-2", "version_id": 9}, headers=headers,
    )
    assert unknown.status_code == 400

    bad_date = client.post(
        "/api/stock", json={"name": "x", "unique_number": "N-3", "expiry_date": "soon"}, headers=headers,
    )
    assert bad_date.status_code == 400


def test_duplicate_unique_number_returns_conflict(client, headers_for, make_stock_item):
    make_stock_item(unique_number="DUP-1")
    resp = client.post(
        "/api/stock", json={"name": "Again", "unique_number": "DUP-1"}, headers=headers_for(Role.ADMIN),
    )
    assert resp.status_code == 409
    assert resp.json["error"] == "conflict"


def test_update_quantity_is_ledgered(client, headers_for, make_stock_item):
    item = make_stock_item(quantity=40)
    headers = headers_for(Role.ADMIN)

    resp = client.put(f"/api/stock/{item.id}", json={"quantity": 25}, headers=headers)
    assert resp.status_code == 200
    assert resp.json["quantity"] == 25

    movements = client.get(f"/api/movements/stock/{item.id}", headers=headers).json
    assert [(m["type"], m["quantity"]) for m in movements] == [("add", 40), ("remove", 15)]


def test_missing_item_returns_not_found(client, headers_for):
    headers = headers_for(Role.ADMIN)
    assert client.get("/api/stock/999", headers=headers).status_code == 404
    assert client.get("/api/stock/unique/NOPE", headers=headers).status_code == 404
    assert client.put("/api/stock/999", json={"name": "x"}, headers=headers).status_code == 404
    assert client.get("/api/movements/stock/999", headers=headers).status_code == 404


def test_low_stock_endpoint(client, headers_for, make_stock_item):
    for q in (0, 10, 25, 26):
        make_stock_item(quantity=q)
    headers = headers_for(Role.STOCK_MANAGER)

    resp = client.get("/api/stock/low/25", headers=headers)
    assert resp.status_code == 200
    assert sorted(i["quantity"] for i in resp.json) == [0, 10, 25]

    assert client.get("/api/stock/low/abc", headers=headers).status_code == 400
    assert client.get("/api/stock/low/-1", headers=headers).status_code == 400


def test_expiring_endpoint(client, headers_for, make_stock_item):
    soon = make_stock_item(expiry_date=utcnow() + timedelta(days=5))
    make_stock_item(expiry_date=utcnow() + timedelta(days=60))

    resp = client.get("/api/stock/expiring/30", headers=headers_for(Role.CEO))
    assert resp.status_code == 200
    assert [i["id"] for i in resp.json] == [soon.id]


def test_out_of_range_query_values(client, headers_for, make_stock_item):
    make_stock_item(quantity=3)
    make_stock_item(quantity=900)
    headers = headers_for(Role.ADMIN)

    low = client.get("/api/stock/low/100000000000000000000", headers=headers)
    assert low.status_code == 200
    assert sorted(i["quantity"] for i in low.json) == [3, 900]

    expiring = client.get("/api/stock/expiring/5000000", headers=headers)
    assert expiring.status_code == 400
    assert expiring.json["error"] == "invalid_input"
