import json
import logging
import os
import random
import time
from datetime import datetime, timezone

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

LOG_SAMPLE_2XX = float(os.getenv("LOG_SAMPLE_2XX", "0.1"))

# Streaming endpoints stay open for the lifetime of a dashboard
UNLOGGED_PATHS = {"/api/orders/stream", "/metrics"}


logger = logging.getLogger("api")


class LoggingMiddleware(BaseHTTPMiddleware):
    """Emit a structured outbound log line per request.

    Successful responses are sampled with ``LOG_SAMPLE_2XX``; client and
    server errors are always logged.
    """

    async def dispatch(self, request: Request, call_next):
        if request.url.path in UNLOGGED_PATHS:
            return await call_next(request)

        start = time.perf_counter()
        response = await call_next(request)
        dur_ms = int((time.perf_counter() - start) * 1000)
        status = response.status_code

        if 200 <= status < 300 and random.random() >= LOG_SAMPLE_2XX:
            return response

        outbound = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "req_id": getattr(request.state, "request_id", None),
            "method": request.method,
            "route": request.url.path,
            "status": status,
            "latency_ms": dur_ms,
            "ip": request.client.host if request.client else None,
        }
        log_fn = logger.error if status >= 500 else logger.info
        log_fn(json.dumps(outbound))
        return response
