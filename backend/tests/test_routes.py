"""
HTTP-level tests: request parsing, commit boundaries and the error-to-status
mapping for the main flows.
"""

import uuid


def _purchase(client, product, supplier, location, quantity=10):
    return client.post("/api/purchases", json={
        "product_id": str(product.id),
        "supplier_id": str(supplier.id),
        "location_id": str(location.id),
        "quantity": quantity,
        "unit_cost_cents": 900,
        "expiry_date": "2030-01-31",
    })


def _level(client, product, location):
    resp = client.get(f"/api/stock?product_id={product.id}&location_id={location.id}")
    assert resp.status_code == 200
    return resp.get_json()["quantity"]


def test_health(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["status"] == "ok"
    assert data["checks"]["database"]["status"] == "healthy"


def test_unknown_route_is_json_404(client):
    resp = client.get("/api/nothing-here")
    assert resp.status_code == 404
    assert "error" in resp.get_json()


def test_purchase_then_sale_flow(client, product, supplier, warehouse, user):
    resp = _purchase(client, product, supplier, warehouse, 10)
    assert resp.status_code == 201
    purchase = resp.get_json()
    assert purchase["total_cost_cents"] == 9000
    assert purchase["expiry_date"] == "2030-01-31"

    resp = client.post("/api/sales", json={
        "product_id": str(product.id),
        "location_id": str(warehouse.id),
        "user_id": str(user.id),
        "quantity": 3,
        "unit_price_cents": 1500,
    })
    assert resp.status_code == 201
    assert _level(client, product, warehouse) == 7

    resp = client.get(f"/api/stock/movements?reference_id={purchase['id']}")
    items = resp.get_json()["items"]
    assert len(items) == 1
    assert items[0]["movement_type"] == "PURCHASE"

    summary = client.get("/api/sales/summary").get_json()
    assert summary["total_revenue_cents"] == 4500


def test_oversell_returns_409_and_writes_nothing(client, product, supplier, warehouse, user):
    _purchase(client, product, supplier, warehouse, 5)

    resp = client.post("/api/sales", json={
        "product_id": str(product.id),
        "location_id": str(warehouse.id),
        "user_id": str(user.id),
        "quantity": 10,
        "unit_price_cents": 100,
    })
    assert resp.status_code == 409
    assert "error" in resp.get_json()
    assert _level(client, product, warehouse) == 5
    assert client.get("/api/sales").get_json()["count"] == 0


def test_sale_validation_errors(client, product, warehouse, user):
    base = {
        "product_id": str(product.id),
        "location_id": str(warehouse.id),
        "user_id": str(user.id),
        "quantity": 1,
        "unit_price_cents": 100,
    }

    resp = client.post("/api/sales", json={**base, "quantity": 1.5})
    assert resp.status_code == 400

    resp = client.post("/api/sales", json={k: v for k, v in base.items() if k != "user_id"})
    assert resp.status_code == 400

    resp = client.post("/api/sales", json={**base, "discount": 5})
    assert resp.status_code == 400

    resp = client.post("/api/sales", json={**base, "product_id": str(uuid.uuid4())})
    assert resp.status_code == 404


def test_manual_adjustment(client, product, warehouse):
    resp = client.post("/api/stock/adjust", json={
        "product_id": str(product.id),
        "location_id": str(warehouse.id),
        "quantity_change": -2,
        "note": "breakage",
    })
    assert resp.status_code == 201
    data = resp.get_json()
    assert data["stock"]["quantity"] == -2
    assert data["movement"]["movement_type"] == "INVENTORY_ADJUSTMENT"

    resp = client.post("/api/stock/adjust", json={
        "product_id": str(product.id),
        "location_id": str(warehouse.id),
    })
    assert resp.status_code == 400

    verify = client.get("/api/stock/verify").get_json()
    assert verify["consistent"] is True


def test_stock_read_requires_both_ids(client, product):
    resp = client.get(f"/api/stock?product_id={product.id}")
    assert resp.status_code == 400


def test_transfer_flow(client, product, supplier, warehouse, bar, user):
    _purchase(client, product, supplier, warehouse, 8)

    resp = client.post("/api/transfers", json={
        "product_id": str(product.id),
        "from_location_id": str(warehouse.id),
        "to_location_id": str(bar.id),
        "user_id": str(user.id),
        "quantity": 3,
    })
    assert resp.status_code == 201
    assert _level(client, product, warehouse) == 5
    assert _level(client, product, bar) == 3

    total = client.get(f"/api/stock/products/{product.id}/total").get_json()
    assert total["total_quantity"] == 8

    resp = client.post("/api/transfers", json={
        "product_id": str(product.id),
        "from_location_id": str(bar.id),
        "to_location_id": str(bar.id),
        "user_id": str(user.id),
        "quantity": 1,
    })
    assert resp.status_code == 400


def test_inventory_count_flow(client, product, supplier, warehouse, user):
    _purchase(client, product, supplier, warehouse, 100)

    resp = client.post("/api/inventory-sessions", json={
        "location_id": str(warehouse.id),
        "user_id": str(user.id),
    })
    assert resp.status_code == 201
    session_id = resp.get_json()["id"]

    resp = client.post("/api/inventory-sessions", json={
        "location_id": str(warehouse.id),
        "user_id": str(user.id),
    })
    assert resp.status_code == 409

    resp = client.post(f"/api/inventory-sessions/{session_id}/lines", json={"product_id": str(product.id)})
    assert resp.status_code == 201
    line = resp.get_json()
    assert line["expected_quantity"] == 100

    resp = client.put(f"/api/inventory-sessions/lines/{line['id']}", json={})
    assert resp.status_code == 400

    resp = client.put(f"/api/inventory-sessions/lines/{line['id']}", json={"counted_quantity": 95})
    assert resp.status_code == 200

    resp = client.post(f"/api/inventory-sessions/{session_id}/close", json={"user_id": str(user.id)})
    assert resp.status_code == 200
    summary = resp.get_json()
    assert summary["status"] == "CLOSED"
    assert summary["totals"]["total_discrepancy"] == -5

    assert _level(client, product, warehouse) == 95

    resp = client.post(f"/api/inventory-sessions/{session_id}/close", json={})
    assert resp.status_code == 400


def test_product_crud(client, category, tag):
    resp = client.post("/api/products", json={
        "name": "Rum 70cl",
        "barcode": "5000000000042",
        "unit": "bottle",
        "category_id": str(category.id),
        "tag_ids": [str(tag.id)],
    })
    assert resp.status_code == 201
    product_id = resp.get_json()["id"]

    resp = client.post("/api/products", json={"name": "Rum 70cl"})
    assert resp.status_code == 409

    resp = client.get("/api/products/barcode/5000000000042")
    assert resp.status_code == 200
    assert resp.get_json()["id"] == product_id

    resp = client.put(f"/api/products/{product_id}", json={"description": "Dark"})
    assert resp.status_code == 200
    assert resp.get_json()["description"] == "Dark"

    resp = client.delete(f"/api/products/{product_id}")
    assert resp.status_code == 200
    assert client.get(f"/api/products/{product_id}").status_code == 404


def test_user_create_hides_hash(client):
    resp = client.post("/api/users", json={"username": "dana", "password": "Str0ng!Pass", "role": "cashier"})
    assert resp.status_code == 201
    data = resp.get_json()
    assert data["role"] == "CASHIER"
    assert "password_hash" not in data

    resp = client.post("/api/users", json={"username": "erin", "password": "weak"})
    assert resp.status_code == 400


def test_activity_log_lists_recorded_actions(client, product, supplier, warehouse):
    _purchase(client, product, supplier, warehouse, 1)

    items = client.get("/api/activity").get_json()["items"]
    assert any(item["action"].startswith("Purchase ") for item in items)


def test_out_of_range_integers_are_400_not_500(client, product, supplier, warehouse, user):
    huge = 10 ** 20

    resp = _purchase(client, product, supplier, warehouse, huge)
    assert resp.status_code == 400
    assert "quantity" in resp.get_json()["error"]

    resp = client.post("/api/sales", json={
        "product_id": str(product.id),
        "location_id": str(warehouse.id),
        "user_id": str(user.id),
        "quantity": str(huge),
        "unit_price_cents": 1500,
    })
    assert resp.status_code == 400

    resp = client.post("/api/stock/adjust", json={
        "product_id": str(product.id),
        "location_id": str(warehouse.id),
        "quantity_change": huge,
    })
    assert resp.status_code == 400

    resp = client.get(f"/api/stock/low?threshold={huge}")
    assert resp.status_code == 400

    resp = client.post("/api/inventory-sessions", json={
        "location_id": str(warehouse.id),
        "user_id": str(user.id),
    })
    session_id = resp.get_json()["id"]
    resp = client.post(f"/api/inventory-sessions/{session_id}/lines", json={"product_id": str(product.id)})
    line_id = resp.get_json()["id"]
    resp = client.put(f"/api/inventory-sessions/lines/{line_id}", json={"counted_quantity": huge})
    assert resp.status_code == 400

    assert _level(client, product, warehouse) == 0
    assert client.get("/api/stock/verify").get_json()["consistent"] is True


def test_categories_with_products(client, category, product, other_product):
    resp = client.get("/api/categories/with-products")
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["count"] == 1
    assert data["items"][0]["id"] == str(category.id)
    assert [p["id"] for p in data["items"][0]["products"]] == [str(product.id)]


def test_date_only_end_filter_covers_the_whole_day(client, product, supplier, warehouse, user):
    _purchase(client, product, supplier, warehouse, 5)
    resp = client.post("/api/sales", json={
        "product_id": str(product.id),
        "location_id": str(warehouse.id),
        "user_id": str(user.id),
        "quantity": 1,
        "unit_price_cents": 1500,
        "sale_date": "2029-06-30T18:45:00Z",
    })
    assert resp.status_code == 201

    assert client.get("/api/sales?start=2029-06-30&end=2029-06-30").get_json()["count"] == 1
    assert client.get("/api/sales?end=2029-06-29").get_json()["count"] == 0
    assert client.get("/api/sales?end=not-a-date").status_code == 400
