# routes_metrics.py

"""Prometheus metrics and /metrics endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, generate_latest

# Counters
orders_created_total = Counter("orders_created_total", "Total orders created")
orders_created_total.inc(0)

order_status_updates_total = Counter(
    "order_status_updates_total", "Total order status writes", ["status"]
)
order_status_updates_total.labels(status="pending").inc(0)

order_cancellations_total = Counter(
    "order_cancellations_total",
    "Total cancellation records appended",
    ["scope"],
)
order_cancellations_total.labels(scope="order").inc(0)
order_cancellations_total.labels(scope="item").inc(0)

broadcast_failures_total = Counter(
    "broadcast_failures_total", "Events that could not be published", ["event"]
)
broadcast_failures_total.labels(event="new-order").inc(0)

http_errors_total = Counter(
    "http_errors_total", "HTTP error responses by route template", ["status", "route"]
)

slow_queries_total = Counter(
    "order_store_slow_queries_total",
    "Order store statements over the slow-query threshold",
    ["statement"],
)

sse_clients_gauge = Gauge(
    "sse_clients_gauge", "Current number of connected SSE clients"
)
sse_clients_gauge.set(0)

router = APIRouter()


@router.get("/metrics")
async def metrics_endpoint() -> Response:
    """Expose Prometheus metrics."""
    data = generate_latest()
    return Response(data, media_type=CONTENT_TYPE_LATEST)
