"""Per-request and per-order context shared by logs, metrics and envelopes."""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)
order_id_ctx: ContextVar[int | None] = ContextVar("order_id", default=None)


@contextmanager
def bind_order(order_id: int | None) -> Iterator[None]:
    """Tag log records and slow-query reports emitted in the block with ``order_id``."""

    if order_id is None:
        yield
        return
    token = order_id_ctx.set(order_id)
    try:
        yield
    finally:
        order_id_ctx.reset(token)
