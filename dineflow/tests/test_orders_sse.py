import json

import fakeredis.aioredis
import pytest

from dineflow.app import routes_orders_sse
from dineflow.app.events import RedisBroadcaster
from dineflow.app.services.order_engine import OrderEngine

PIZZA = {
    "menu_item_id": 1,
    "name": "Margherita Pizza",
    "quantity": 1,
    "price_inr": 299,
    "price_usd": 3.99,
}


def _parse(frame: str) -> dict:
    fields = {}
    for line in frame.strip().splitlines():
        key, _, value = line.partition(": ")
        fields[key] = value
    return fields


async def _next_event(body_iterator, attempts: int = 20) -> dict:
    for _ in range(attempts):
        chunk = await body_iterator.__anext__()
        chunk = chunk.decode() if isinstance(chunk, bytes) else chunk
        if chunk.startswith("event:"):
            return _parse(chunk)
    raise AssertionError("no event frame received")


@pytest.mark.anyio
async def test_snapshot_then_live_updates(engine, bus):
    open_order = await engine.create_order(3, [PIZZA])
    done = await engine.create_order(4, [PIZZA])
    await engine.update_order_status(done["id"], "served")
    await engine.drain()

    resp = await routes_orders_sse.stream_orders(None, engine=engine, broadcaster=bus)
    snapshot = await _next_event(resp.body_iterator)
    assert snapshot["event"] == "snapshot"
    assert snapshot["id"] == "1"
    orders = json.loads(snapshot["data"])["orders"]
    assert [o["id"] for o in orders] == [open_order["id"]]
    assert orders[0]["items"][0]["item_name"] == "Margherita Pizza"
    assert orders[0]["total_amount_inr"] == open_order["total_amount_inr"] == "299.00"

    await engine.update_order_status(open_order["id"], "preparing")
    update = await _next_event(resp.body_iterator)
    assert update["event"] == "order-status-updated"
    assert update["id"] == "2"
    assert json.loads(update["data"])["order_status"] == "preparing"

    await engine.create_order(5, [PIZZA])
    created = await _next_event(resp.body_iterator)
    assert created["event"] == "new-order"
    assert created["id"] == "3"

    await resp.body_iterator.aclose()
    assert bus.subscriber_count == 0


@pytest.mark.anyio
async def test_reconnect_continues_sequence(engine, bus):
    resp = await routes_orders_sse.stream_orders("7", engine=engine, broadcaster=bus)
    snapshot = await _next_event(resp.body_iterator)
    assert snapshot["id"] == "8"
    assert json.loads(snapshot["data"]) == {"orders": []}
    await resp.body_iterator.aclose()


@pytest.mark.anyio
async def test_idle_stream_sends_keepalive(engine, bus):
    resp = await routes_orders_sse.stream_orders(None, engine=engine, broadcaster=bus)
    await resp.body_iterator.__anext__()  # snapshot
    chunk = await resp.body_iterator.__anext__()
    assert chunk == ":keepalive\n\n"
    await resp.body_iterator.aclose()


@pytest.mark.anyio
async def test_stream_over_redis(sessions):
    redis = fakeredis.aioredis.FakeRedis()
    broadcaster = RedisBroadcaster(redis, channel="rt:orders", keepalive=0.05)
    engine = OrderEngine(sessions, broadcaster)

    resp = await routes_orders_sse.stream_orders(
        None, engine=engine, broadcaster=broadcaster
    )
    assert (await _next_event(resp.body_iterator))["event"] == "snapshot"

    order = await engine.create_order(2, [PIZZA])
    event = await _next_event(resp.body_iterator)
    assert event["event"] == "new-order"
    assert json.loads(event["data"])["id"] == order["id"]

    await resp.body_iterator.aclose()
    await redis.aclose()
