from __future__ import annotations

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from ..routes_metrics import http_errors_total

UNMATCHED = "unmatched"


def route_template(request: Request) -> str:
    """Return the matched route path, e.g. ``/api/orders/{order_id}/status``.

    Counting by template keeps the label set bounded however many orders
    exist.
    """

    route = request.scope.get("route")
    return getattr(route, "path", UNMATCHED)


class HttpErrorCounterMiddleware(BaseHTTPMiddleware):
    """Count 4xx/5xx responses per status and route template."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        if response.status_code >= 400:
            http_errors_total.labels(
                status=str(response.status_code), route=route_template(request)
            ).inc()
        return response
