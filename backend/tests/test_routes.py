"""HTTP surface: JSON in, JSON out, typed errors mapped to status codes."""

from decimal import Decimal


def test_health(client, db_session):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.get_json()["checks"]["database"]["status"] == "healthy"


def test_writes_require_actor(client, db_session):
    response = client.post("/api/products/", json={"sku": "X", "name": "X"})
    assert response.status_code == 401

    response = client.post("/api/products/", json={"sku": "X", "name": "X"}, headers={"X-Actor-Id": "abc"})
    assert response.status_code == 401


def test_create_and_get_product(client, db_session, actor_headers):
    response = client.post("/api/products/", json={
        "sku": "YERBA",
        "name": "Yerba",
        "base_unit": "kg",
        "price_cents": 3000,
        "stock": "20",
        "units": {"pack(500g)": {"factor": "0.5", "price_cents": 1600}},
    }, headers=actor_headers)
    assert response.status_code == 201
    product = response.get_json()["product"]
    assert product["units"][0]["name"] == "pack(500g)"

    response = client.get(f"/api/products/{product['id']}")
    assert response.status_code == 200
    assert response.get_json()["product"]["sku"] == "YERBA"

    assert client.get("/api/products/9999").status_code == 404


def test_validation_error_shape(client, db_session, actor_headers):
    response = client.post("/api/products/", json={"name": "No sku"}, headers=actor_headers)
    assert response.status_code == 400
    body = response.get_json()
    assert body["code"] == "VALIDATION_ERROR"
    assert body["details"] == {"missing": ["sku"]}


def test_stock_adjustment_and_movements(client, db_session, actor_headers, sugar, stock_of):
    response = client.post(f"/api/products/{sugar.id}/stock", json={"quantity": "-60"}, headers=actor_headers)
    assert response.status_code == 409
    assert response.get_json()["code"] == "INSUFFICIENT_STOCK"

    response = client.post(f"/api/products/{sugar.id}/stock", json={"quantity": -5, "note": "spill"}, headers=actor_headers)
    assert response.status_code == 200
    assert stock_of(sugar.id) == Decimal("45")

    movements = client.get(f"/api/products/{sugar.id}/movements").get_json()["movements"]
    assert [(m["reason"], m["user_id"]) for m in movements] == [("adjustment", 7)]


def test_direct_sale(client, db_session, actor_headers, flour, stock_of):
    response = client.post("/api/sales/", json={
        "items": [{"product_id": flour.id, "quantity": 2, "unit": "bag(5kg)"}],
        "payments": [{"method": "cash", "amount_cents": 8000}],
    }, headers=actor_headers)

    assert response.status_code == 201
    sale = response.get_json()["sale"]
    assert sale["total_cents"] == 8000
    assert sale["created_by_user_id"] == 7
    assert stock_of(flour.id) == Decimal("90")

    assert client.get(f"/api/sales/{sale['id']}").get_json()["sale"]["document_number"] == sale["document_number"]


def test_direct_sale_bad_split(client, db_session, actor_headers, flour):
    response = client.post("/api/sales/", json={
        "items": [{"product_id": flour.id, "quantity": 1, "unit": "bag(5kg)"}],
        "payments": [{"method": "cash", "amount_cents": 1}],
    }, headers=actor_headers)
    assert response.status_code == 400
    assert response.get_json()["code"] == "INVALID_PAYMENT_SPLIT"


def test_order_lifecycle(client, db_session, actor_headers, flour, sugar, stock_of):
    response = client.post("/api/orders/", json={
        "items": [{"product_id": flour.id, "quantity": "2", "unit": "bag(5kg)"}],
        "delivery_date": "2026-11-02T10:00:00Z",
    }, headers=actor_headers)
    assert response.status_code == 201
    order = response.get_json()["order"]
    assert order["delivery_date"] == "2026-11-02T10:00:00Z"
    assert stock_of(flour.id) == Decimal("90")

    response = client.put(f"/api/orders/{order['id']}/items", json={
        "items": [{"product_id": sugar.id, "quantity": "4"}, {"product_id": flour.id, "quantity": "1"}],
    }, headers=actor_headers)
    assert response.status_code == 200
    items = response.get_json()["order"]["items"]
    assert stock_of(flour.id) == Decimal("99")
    assert stock_of(sugar.id) == Decimal("46")

    response = client.delete(f"/api/orders/items/{items[0]['id']}", headers=actor_headers)
    assert response.status_code == 200
    assert stock_of(sugar.id) == Decimal("50")

    response = client.post(f"/api/orders/{order['id']}/status", json={"status": "processing"}, headers=actor_headers)
    assert response.get_json()["order"]["status"] == "processing"

    response = client.post(f"/api/orders/{order['id']}/invoice", json={"discount_percent": "10"}, headers=actor_headers)
    assert response.status_code == 201
    body = response.get_json()
    assert body["order"]["status"] == "invoiced"
    assert body["sale"]["total_cents"] == 810
    assert stock_of(flour.id) == Decimal("99")

    response = client.post(f"/api/orders/{order['id']}/invoice", json={}, headers=actor_headers)
    assert response.status_code == 409
    assert response.get_json()["code"] == "ALREADY_INVOICED"


def test_order_errors(client, db_session, actor_headers, flour):
    assert client.get("/api/orders/9999").status_code == 404

    response = client.post("/api/orders/", json={"items": []}, headers=actor_headers)
    assert response.get_json()["code"] == "EMPTY_ITEM_LIST"

    response = client.post("/api/orders/", json={
        "items": [{"product_id": flour.id, "quantity": 1, "unit": "pallet"}],
    }, headers=actor_headers)
    assert response.status_code == 400
    assert response.get_json()["code"] == "UNKNOWN_UNIT"

    response = client.post("/api/orders/", json={
        "items": [{"product_id": flour.id, "quantity": 1}],
        "delivery_date": "next tuesday",
    }, headers=actor_headers)
    assert response.status_code == 400


def test_customer_account_and_statement(client, db_session, actor_headers, sugar):
    response = client.post("/api/customers/", json={"name": "Kiosco", "open_account": True}, headers=actor_headers)
    assert response.status_code == 201
    customer = response.get_json()["customer"]
    account_id = customer["account_id"]

    client.post("/api/sales/", json={
        "customer_id": customer["id"],
        "items": [{"product_id": sugar.id, "quantity": 2}],
        "payments": [{"method": "current_account", "amount_cents": 1000}],
    }, headers=actor_headers)

    response = client.post(f"/api/accounts/{account_id}/adjustments", json={
        "type": "credit", "amount_cents": 400, "reason": "Payment received",
    }, headers=actor_headers)
    assert response.status_code == 201
    assert response.get_json()["account"]["balance_cents"] == 600

    statement = client.get(f"/api/accounts/{account_id}/statement").get_json()
    assert [r["running_balance_cents"] for r in statement["rows"]] == [1000, 600]
    assert statement["closing_balance_cents"] == 600

    transactions = client.get(f"/api/accounts/{account_id}/transactions").get_json()["transactions"]
    assert [t["entry_type"] for t in transactions] == ["debit", "credit"]

    response = client.post(f"/api/accounts/{account_id}/recompute", headers=actor_headers)
    assert response.get_json()["drift_cents"] == 0


def test_notes(client, db_session, actor_headers, make_customer):
    customer = make_customer("Noted")

    response = client.post("/api/notes/", json={
        "type": "credit", "amount_cents": 250, "reason": "Price correction", "customer_id": customer.id,
    }, headers=actor_headers)
    assert response.status_code == 201
    note = response.get_json()["note"]

    response = client.post(f"/api/notes/{note['id']}/void", json={"reason": "Wrong customer"}, headers=actor_headers)
    assert response.status_code == 200
    assert response.get_json()["note"]["status"] == "voided"

    response = client.post(f"/api/notes/{note['id']}/void", json={"reason": "Again"}, headers=actor_headers)
    assert response.status_code == 409
    assert response.get_json()["code"] == "INVALID_NOTE_STATE"


def test_boolean_flags_accept_json_strings(client, db_session, actor_headers, sugar, stock_of):
    response = client.post("/api/orders/", json={
        "items": [{"product_id": sugar.id, "quantity": "3"}],
        "reserve_stock": "false",
    }, headers=actor_headers)
    assert response.status_code == 201
    assert response.get_json()["order"]["stock_reserved"] is False
    assert stock_of(sugar.id) == Decimal("50")

    response = client.post("/api/orders/", json={
        "items": [{"product_id": sugar.id, "quantity": "3"}],
        "reserve_stock": "maybe",
    }, headers=actor_headers)
    assert response.status_code == 400
    assert response.get_json()["code"] == "VALIDATION_ERROR"

    response = client.post("/api/products/", json={
        "sku": "PLAIN", "name": "Plain", "price_cents": 100, "is_composite": "false",
    }, headers=actor_headers)
    assert response.status_code == 201
    assert response.get_json()["product"]["is_composite"] is False

    response = client.post("/api/customers/", json={"name": "Cash only", "open_account": "false"}, headers=actor_headers)
    assert response.status_code == 201
    assert response.get_json()["customer"]["account_id"] is None


def test_surcharge_is_not_capped_but_discount_is(client, db_session, actor_headers, sugar):
    response = client.post("/api/sales/", json={
        "items": [{"product_id": sugar.id, "quantity": 2}],
        "payments": [{"method": "cash", "amount_cents": 2500}],
        "surcharge_percent": "150",
    }, headers=actor_headers)
    assert response.status_code == 201
    assert response.get_json()["sale"]["total_cents"] == 2500

    response = client.post("/api/sales/", json={
        "items": [{"product_id": sugar.id, "quantity": 2}],
        "payments": [{"method": "cash", "amount_cents": 0}],
        "discount_percent": "101",
    }, headers=actor_headers)
    assert response.status_code == 400
    assert response.get_json()["code"] == "VALIDATION_ERROR"
