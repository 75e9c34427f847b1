"""Slow-query reporting for the order store.

Statements slower than ``DB_SLOW_QUERY_MS`` are logged with the order they
were issued for and counted per statement kind and table, e.g.
``update:orders``.
"""

from __future__ import annotations

import logging
import os
import re
import time

from sqlalchemy import event
from sqlalchemy.engine import Engine

from ..routes_metrics import slow_queries_total
from .context import order_id_ctx

SLOW_QUERY_MS = int(os.getenv("DB_SLOW_QUERY_MS", "200"))

TABLE_RE = re.compile(r"\b(?:FROM|INTO|UPDATE)\s+\"?(\w+)", re.I)

logger = logging.getLogger("orders.db")


def statement_kind(statement: str) -> str:
    """Return ``<verb>:<table>`` for ``statement``."""

    verb = statement.lstrip().split(None, 1)[0].lower() if statement.strip() else "?"
    match = TABLE_RE.search(statement)
    return f"{verb}:{match.group(1).lower()}" if match else verb


def add_query_logger(engine: Engine, threshold_ms: int = SLOW_QUERY_MS) -> None:
    """Report statements on ``engine`` that run longer than ``threshold_ms``."""
    target = engine.sync_engine if hasattr(engine, "sync_engine") else engine

    def before_cursor_execute(
        conn, cursor, statement, parameters, context, executemany
    ):  # type: ignore[no-untyped-def]
        context._query_start_time = time.perf_counter()

    def after_cursor_execute(
        conn, cursor, statement, parameters, context, executemany
    ):  # type: ignore[no-untyped-def]
        total_ms = (time.perf_counter() - context._query_start_time) * 1000
        if total_ms <= threshold_ms:
            return
        kind = statement_kind(statement)
        slow_queries_total.labels(statement=kind).inc()
        logger.warning(
            "slow %s took %dms",
            kind,
            int(total_ms),
            extra={"order_id": order_id_ctx.get(None), "latency_ms": int(total_ms)},
        )

    event.listen(target, "before_cursor_execute", before_cursor_execute)
    event.listen(target, "after_cursor_execute", after_cursor_execute)
