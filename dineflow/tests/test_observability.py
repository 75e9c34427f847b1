import json
import logging

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from prometheus_client import REGISTRY
from sqlalchemy import text

from dineflow.app.db import get_engine
from dineflow.app.middlewares import CORSMiddleware
from dineflow.app.obs import add_query_logger, bind_order, request_id_ctx
from dineflow.app.obs.logging import JsonFormatter, OrderContextFilter
from dineflow.app.obs.queries import statement_kind


@pytest.mark.parametrize(
    "statement, kind",
    [
        ("UPDATE orders SET order_status=? WHERE orders.id = ?", "update:orders"),
        ("INSERT INTO order_items (order_id, item_name) VALUES (?, ?)", "insert:order_items"),
        ('SELECT orders.id FROM "orders" WHERE orders.id = ?', "select:orders"),
        ("SELECT 1", "select"),
    ],
)
def test_statement_kind(statement, kind):
    assert statement_kind(statement) == kind


def test_log_records_carry_order_and_request_context():
    record = logging.LogRecord(
        "orders", logging.INFO, __file__, 1, "reason from ana@example.com", None, None
    )
    token = request_id_ctx.set("req-1")
    try:
        with bind_order(42):
            OrderContextFilter().filter(record)
    finally:
        request_id_ctx.reset(token)

    data = json.loads(JsonFormatter().format(record))
    assert data["order_id"] == 42
    assert data["req_id"] == "req-1"
    assert "ana@example.com" not in data["msg"]


@pytest.mark.anyio
async def test_slow_queries_are_tagged_with_order(caplog):
    engine = get_engine("sqlite+aiosqlite:///:memory:")
    add_query_logger(engine, threshold_ms=-1)
    before = REGISTRY.get_sample_value(
        "order_store_slow_queries_total", {"statement": "select"}
    ) or 0

    with caplog.at_level(logging.WARNING, logger="orders.db"):
        async with engine.connect() as conn:
            with bind_order(42):
                await conn.execute(text("SELECT 1"))
    await engine.dispose()

    slow = [r for r in caplog.records if r.name == "orders.db"]
    assert slow and slow[-1].order_id == 42
    after = REGISTRY.get_sample_value(
        "order_store_slow_queries_total", {"statement": "select"}
    )
    assert after >= before + 1


@pytest.mark.anyio
async def test_http_errors_counted_by_route_template(client):
    labels = {"status": "404", "route": "/api/orders/{order_id}"}
    before = REGISTRY.get_sample_value("http_errors_total", labels) or 0

    resp = await client.get("/api/orders/4040")

    assert resp.status_code == 404
    assert REGISTRY.get_sample_value("http_errors_total", labels) == before + 1


@pytest.mark.anyio
async def test_request_id_is_echoed_or_replaced(client):
    kept = await client.get("/api/health", headers={"X-Request-ID": "dash-7.a"})
    assert kept.headers["X-Request-ID"] == "dash-7.a"

    replaced = await client.get("/api/health", headers={"X-Request-ID": "<b>" * 30})
    assert replaced.headers["X-Request-ID"] != "<b>" * 30
    assert len(replaced.headers["X-Request-ID"]) == 32


@pytest.mark.anyio
async def test_open_cors_never_allows_credentials(client):
    resp = await client.get("/api/health", headers={"Origin": "https://anywhere.example"})
    assert resp.headers["Access-Control-Allow-Origin"] == "*"
    assert "Access-Control-Allow-Credentials" not in resp.headers


@pytest.mark.anyio
async def test_whitelisted_cors():
    app = FastAPI()
    app.add_middleware(CORSMiddleware, allowed_origins=["https://pos.example"])

    @app.get("/ping")
    async def ping():
        return {"ok": True}

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        allowed = await ac.get("/ping", headers={"Origin": "https://pos.example"})
        blocked = await ac.get("/ping", headers={"Origin": "https://evil.example"})

    assert allowed.headers["Access-Control-Allow-Origin"] == "https://pos.example"
    assert allowed.headers["Access-Control-Allow-Credentials"] == "true"
    assert blocked.status_code == 403
    assert blocked.json()["error"]["code"] == "FORBIDDEN_ORIGIN"
