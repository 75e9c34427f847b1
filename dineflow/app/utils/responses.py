"""Response envelopes shared by every route and exception handler.

Success: ``{"ok": true, "data": ...}``. Failure: ``{"ok": false,
"request_id": ..., "error": {"code", "message", "details"?}}``.
"""

from typing import Any, Dict, Iterable

from fastapi.responses import JSONResponse

from ..domain import OrderError
from ..obs.context import request_id_ctx


def ok(data: Any) -> Dict[str, Any]:
    """Return a success envelope."""
    return {"ok": True, "data": data}


def err(
    code: int | str, message: str, details: Dict[str, Any] | None = None
) -> Dict[str, Any]:
    """Return an error envelope tagged with the current request id."""

    error: Dict[str, Any] = {"code": code, "message": message}
    if details:
        error["details"] = details
    return {"ok": False, "request_id": request_id_ctx.get(None), "error": error}


def order_error_response(exc: OrderError) -> JSONResponse:
    """Map an engine error to its envelope and HTTP status."""

    return JSONResponse(err(exc.code, exc.message), status_code=exc.status_code)


def invalid_request_response(errors: Iterable[Dict[str, Any]]) -> JSONResponse:
    """Report request body or query validation failures as ``INVALID_INPUT``."""

    problems = [{"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in errors]
    return JSONResponse(
        err("INVALID_INPUT", "Request validation failed", {"errors": problems}),
        status_code=400,
    )
