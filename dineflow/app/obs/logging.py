"""JSON log formatting for the order service.

Every record carries the request id and, while the engine works on an order,
the order id. Customer contact details that end up in messages (emails and
phone numbers typed into cancellation reasons, for example) are masked.
"""

import json
import logging
import re
from datetime import datetime, timezone
from typing import Any

from .context import order_id_ctx, request_id_ctx

CONTACT_RE = re.compile(r"[\w.+-]+@[\w-]+\.[\w.-]+|\+?\b\d{10,12}\b", re.I)

# extra fields copied from ``logger.*(..., extra={...})`` when present
EXTRA_FIELDS = ("table_number", "event", "route", "status", "latency_ms")


def mask_contacts(text: str) -> str:
    return CONTACT_RE.sub("***", text)


class OrderContextFilter(logging.Filter):
    """Fill ``req_id`` and ``order_id`` from the active context."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.req_id = request_id_ctx.get(None)
        if getattr(record, "order_id", None) is None:
            record.order_id = order_id_ctx.get(None)
        return True


class JsonFormatter(logging.Formatter):
    """Render logs as a single JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "req_id": getattr(record, "req_id", None),
            "order_id": getattr(record, "order_id", None),
            "msg": mask_contacts(record.getMessage()),
        }
        for field in EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                data[field] = value
        if record.exc_info:
            data["exc"] = self.formatException(record.exc_info)
        return json.dumps(data, default=str)


def configure_logging(level: int = logging.INFO) -> None:
    """Configure root logger with JSON formatting."""

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    handler.addFilter(OrderContextFilter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)
