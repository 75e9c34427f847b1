"""Health probe covering the database and, when configured, Redis."""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from .utils.responses import err, ok

router = APIRouter()


@router.get("/api/health")
async def health(request: Request):
    """Return connectivity status for the order store and event channel."""

    state = request.app.state
    checks = {"database": "pending", "redis": "disabled"}
    try:
        async with state.order_engine.sessions() as session:
            await session.execute(text("SELECT 1"))
        checks["database"] = "ok"
        if getattr(state, "redis", None) is not None:
            checks["redis"] = "pending"
            await state.redis.ping()
            checks["redis"] = "ok"
    except Exception:  # pragma: no cover - best effort only
        return JSONResponse(
            err("HEALTH_FAIL", "Health check failed", details=checks), status_code=503
        )
    return ok(checks)
