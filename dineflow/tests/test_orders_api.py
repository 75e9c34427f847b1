import pytest


PIZZA = {
    "menu_item_id": 1,
    "name": "Margherita Pizza",
    "quantity": 2,
    "price_inr": 299,
    "price_usd": 3.99,
}


def _order_body(table_number=3, items=None, **extra):
    body = {
        "table_number": table_number,
        "items": items if items is not None else [dict(PIZZA)],
        "currency": "INR",
        "payment_method": "cash",
    }
    body.update(extra)
    return body


@pytest.mark.anyio
async def test_create_and_fetch_order(client):
    resp = await client.post("/api/orders", json=_order_body())
    assert resp.status_code == 200
    body = resp.json()
    assert body["ok"] is True
    order = body["data"]
    assert order["total_amount_inr"] == "598.00"
    assert order["total_amount_usd"] == "7.98"
    assert order["order_status"] == "pending"
    assert order["payment_status"] == "pending"
    assert resp.headers["X-Request-ID"]

    fetched = await client.get(f"/api/orders/{order['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["data"]["items"][0]["quantity"] == 2


@pytest.mark.anyio
async def test_create_order_accepts_id_alias(client):
    line = {"id": 2, "name": "Mango Lassi", "quantity": 1, "price_inr": 89, "price_usd": 1.19}
    resp = await client.post("/api/orders", json=_order_body(items=[line]))
    assert resp.status_code == 200
    assert resp.json()["data"]["items"][0]["menu_item_id"] == 2


@pytest.mark.anyio
async def test_create_order_unknown_table(client):
    resp = await client.post("/api/orders", json=_order_body(table_number=999))
    assert resp.status_code == 404
    body = resp.json()
    assert body["ok"] is False
    assert body["error"]["code"] == "NOT_FOUND"
    assert body["request_id"] == resp.headers["X-Request-ID"]

    listed = await client.get("/api/orders")
    assert listed.json()["data"] == []


@pytest.mark.anyio
async def test_create_order_empty_items(client):
    resp = await client.post("/api/orders", json=_order_body(items=[]))
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "INVALID_INPUT"


@pytest.mark.anyio
async def test_create_order_non_numeric_quantity(client):
    line = {**PIZZA, "quantity": "two"}
    resp = await client.post("/api/orders", json=_order_body(items=[line]))
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"]["code"] == "INVALID_INPUT"
    assert body["error"]["details"]["errors"]


@pytest.mark.anyio
async def test_status_update_and_filtering(client):
    order = (await client.post("/api/orders", json=_order_body())).json()["data"]

    resp = await client.put(
        f"/api/orders/{order['id']}/status", json={"order_status": "preparing"}
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["order_status"] == "preparing"

    bad = await client.put(
        f"/api/orders/{order['id']}/status", json={"order_status": "eaten"}
    )
    assert bad.status_code == 400

    listed = await client.get("/api/orders", params={"status": "preparing"})
    assert [o["id"] for o in listed.json()["data"]] == [order["id"]]
    listed = await client.get("/api/orders", params={"table_number": 4})
    assert listed.json()["data"] == []


@pytest.mark.anyio
async def test_status_update_unknown_order(client):
    resp = await client.put("/api/orders/4040/status", json={"order_status": "ready"})
    assert resp.status_code == 404


@pytest.mark.anyio
async def test_cancel_routes_and_audit_trail(client):
    lassi = {
        "menu_item_id": 2,
        "name": "Mango Lassi",
        "quantity": 1,
        "price_inr": 89,
        "price_usd": 1.19,
    }
    order = (
        await client.post("/api/orders", json=_order_body(items=[dict(PIZZA), lassi]))
    ).json()["data"]
    lassi_id = order["items"][1]["id"]

    resp = await client.post(
        f"/api/orders/{order['id']}/items/{lassi_id}/cancel",
        json={"reason": "Out of stock", "cancelled_by": "staff"},
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["message"] == "Item cancelled successfully"

    resp = await client.post(
        f"/api/orders/{order['id']}/cancel", json={"reason": "Customer left"}
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["cancellation"]["cancelled_by"] == "customer"

    trail = (await client.get(f"/api/orders/{order['id']}/cancellations")).json()["data"]
    assert [(r["item_id"], r["reason"]) for r in trail] == [
        (lassi_id, "Out of stock"),
        (None, "Customer left"),
    ]

    fetched = (await client.get(f"/api/orders/{order['id']}")).json()["data"]
    assert fetched["order_status"] == "cancelled"
    assert fetched["total_amount_inr"] == "687.00"


@pytest.mark.anyio
async def test_cancel_requires_reason(client):
    order = (await client.post("/api/orders", json=_order_body())).json()["data"]
    resp = await client.post(f"/api/orders/{order['id']}/cancel", json={"reason": " "})
    assert resp.status_code == 400


@pytest.mark.anyio
async def test_cancel_mismatched_item(client):
    order = (await client.post("/api/orders", json=_order_body())).json()["data"]
    resp = await client.post(
        f"/api/orders/{order['id']}/items/99999/cancel", json={"reason": "nope"}
    )
    assert resp.status_code == 404


@pytest.mark.anyio
async def test_health_and_metrics(client):
    health = await client.get("/api/health")
    assert health.status_code == 200
    assert health.json()["data"] == {"database": "ok", "redis": "disabled"}

    await client.post("/api/orders", json=_order_body())
    metrics = await client.get("/metrics")
    assert metrics.status_code == 200
    assert "orders_created_total" in metrics.text


@pytest.mark.anyio
async def test_camel_case_payloads(client):
    body = {
        "tableNumber": 3,
        "items": [
            {
                "menuItemId": 1,
                "name": "Margherita Pizza",
                "quantity": 2,
                "priceInr": 299,
                "priceUsd": 3.99,
            }
        ],
        "currency": "INR",
        "paymentMethod": "upi",
    }
    resp = await client.post("/api/orders", json=body)
    assert resp.status_code == 200
    order = resp.json()["data"]
    assert order["total_amount_inr"] == "598.00"
    assert order["payment_status"] == "paid"

    resp = await client.put(
        f"/api/orders/{order['id']}/status", json={"orderStatus": "ready"}
    )
    assert resp.json()["data"]["order_status"] == "ready"


@pytest.mark.anyio
async def test_rest_and_stream_share_money_encoding(client, engine, bus):
    queue = bus.subscribe()

    resp = await client.post("/api/orders", json=_order_body())
    await engine.drain()

    order = resp.json()["data"]
    event = queue.get_nowait()["data"]
    assert order["total_amount_inr"] == event["total_amount_inr"] == "598.00"
    assert order["items"][0]["price_usd"] == event["items"][0]["price_usd"] == "3.99"
    assert order["created_at"] == event["created_at"]


@pytest.mark.anyio
async def test_named_unknown_menu_item_is_not_found(client):
    line = {**PIZZA, "menu_item_id": 404, "name": "Ghost Pizza"}
    resp = await client.post("/api/orders", json=_order_body(items=[line]))
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "NOT_FOUND"
