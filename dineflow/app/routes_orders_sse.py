"""Server-Sent Events stream for kitchen dashboards.

The first event is ``snapshot`` with every open order and its items; after
that each order lifecycle event is forwarded as it is published. Every event
carries a monotonically increasing ``id``. Clients may reconnect using the
``Last-Event-ID`` header to continue the sequence; missed events are not
replayed, the fresh snapshot covers them.
"""

from __future__ import annotations

import json

from fastapi import APIRouter, Depends, Header
from fastapi.responses import StreamingResponse

from .deps.orders import get_broadcaster, get_order_engine
from .domain import OrderStatus
from .events import Broadcaster
from .repos_sqlalchemy import OrderFilter
from .routes_metrics import sse_clients_gauge
from .services.order_engine import OrderEngine

OPEN_STATUSES = (
    OrderStatus.PENDING.value,
    OrderStatus.PREPARING.value,
    OrderStatus.READY.value,
)

router = APIRouter()


def _frame(event: str, seq: int, data) -> str:
    return f"event: {event}\nid: {seq}\ndata: {json.dumps(data)}\n\n"


@router.get(
    "/api/orders/stream",
    response_class=StreamingResponse,
    responses={200: {"content": {"text/event-stream": {}}}},
)
async def stream_orders(
    last_event_id: str | None = Header(None, alias="Last-Event-ID"),
    engine: OrderEngine = Depends(get_order_engine),
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> StreamingResponse:
    """Stream order lifecycle events via SSE."""

    seq = int(last_event_id) + 1 if last_event_id and last_event_id.isdigit() else 1

    async def event_gen():
        nonlocal seq
        sse_clients_gauge.inc()
        try:
            # subscribed before the snapshot so nothing falls in between
            async with broadcaster.listen() as messages:
                open_orders = await engine.list_orders(
                    OrderFilter(statuses=OPEN_STATUSES)
                )
                yield _frame("snapshot", seq, {"orders": open_orders})
                seq += 1

                async for message in messages:
                    if message is None:
                        yield ":keepalive\n\n"
                        continue
                    yield _frame(message["event"], seq, message["data"])
                    seq += 1
        finally:
            sse_clients_gauge.dec()

    return StreamingResponse(event_gen(), media_type="text/event-stream")
