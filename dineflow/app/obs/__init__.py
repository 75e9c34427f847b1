"""Observability helpers."""

from .context import bind_order, order_id_ctx, request_id_ctx
from .errors import capture_exception, init_sentry  # re-export
from .queries import add_query_logger

__all__ = [
    "bind_order",
    "order_id_ctx",
    "request_id_ctx",
    "capture_exception",
    "init_sentry",
    "add_query_logger",
]
