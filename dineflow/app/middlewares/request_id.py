"""Request correlation ids.

Kitchen dashboards and the ordering client may send ``X-Request-ID``; a
value that is not a short token is replaced so that it cannot inject
content into logs or response headers.
"""

import re
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from ..obs.context import request_id_ctx

HEADER = "X-Request-ID"
TOKEN_RE = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def accept_request_id(value: str | None) -> str:
    if value and TOKEN_RE.match(value):
        return value
    return uuid.uuid4().hex


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Bind a request id for logs and error envelopes and echo it back."""

    async def dispatch(self, request: Request, call_next):
        req_id = accept_request_id(request.headers.get(HEADER))
        token = request_id_ctx.set(req_id)
        request.state.request_id = req_id
        try:
            response = await call_next(request)
        finally:
            request_id_ctx.reset(token)
        response.headers[HEADER] = req_id
        return response
