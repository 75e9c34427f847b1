"""Dependency helpers exposing application-scoped order services."""

from fastapi import Request

from ..events import Broadcaster
from ..services.order_engine import OrderEngine


def get_order_engine(request: Request) -> OrderEngine:
    """Return the :class:`OrderEngine` created at application startup."""
    return request.app.state.order_engine


def get_broadcaster(request: Request) -> Broadcaster:
    return request.app.state.broadcaster
