# main.py

"""FastAPI application for table ordering and the kitchen dashboard feed."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import redis.asyncio as redis
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from config import Settings, get_settings

from .db import create_all, get_engine, make_sessionmaker
from .domain import OrderError
from .events import EventBus, RedisBroadcaster
from .middlewares import (
    CORSMiddleware,
    HttpErrorCounterMiddleware,
    LoggingMiddleware,
    RequestIdMiddleware,
)
from .obs import capture_exception, init_sentry
from .obs.logging import configure_logging
from .routes_health import router as health_router
from .routes_metrics import router as metrics_router
from .routes_orders import router as orders_router
from .routes_orders_sse import router as orders_sse_router
from .services.order_engine import OrderEngine
from .utils.responses import err, invalid_request_response, order_error_response

logger = logging.getLogger("api")


def _build_broadcaster(settings: Settings, redis_client):
    if redis_client is not None:
        return RedisBroadcaster(
            redis_client,
            channel=settings.orders_channel,
            keepalive=settings.sse_keepalive_secs,
        )
    return EventBus(
        maxsize=settings.subscriber_queue_size,
        keepalive=settings.sse_keepalive_secs,
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the API application.

    Database and Redis connections are opened in the lifespan handler so that
    importing this module has no side effects beyond logging setup.
    """

    settings = settings or get_settings()
    configure_logging(getattr(logging, settings.log_level.upper(), logging.INFO))
    init_sentry(settings.error_dsn, env=settings.environment)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db_engine = get_engine(settings.database_url)
        if settings.create_schema_on_startup:
            await create_all(db_engine)
        redis_client = (
            redis.from_url(settings.redis_url) if settings.redis_url else None
        )
        app.state.redis = redis_client
        app.state.broadcaster = _build_broadcaster(settings, redis_client)
        app.state.order_engine = OrderEngine(
            make_sessionmaker(db_engine),
            app.state.broadcaster,
            strict_transitions=settings.strict_transitions,
        )
        logger.info(
            "order engine ready (broadcaster=%s strict=%s)",
            type(app.state.broadcaster).__name__,
            settings.strict_transitions,
        )
        try:
            yield
        finally:
            await app.state.order_engine.aclose()
            if redis_client is not None:
                await redis_client.aclose()
            await db_engine.dispose()

    app = FastAPI(title="DineFlow Orders", lifespan=lifespan)

    app.add_middleware(HttpErrorCounterMiddleware)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(CORSMiddleware, allowed_origins=settings.origins)
    app.add_middleware(RequestIdMiddleware)

    @app.exception_handler(OrderError)
    async def order_error_handler(request: Request, exc: OrderError):
        if exc.status_code >= 500:
            logger.error(
                exc.message, extra={"status": exc.status_code, "route": request.url.path}
            )
        return order_error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return invalid_request_response(exc.errors())

    @app.exception_handler(Exception)
    async def general_error_handler(request: Request, exc: Exception):
        logger.exception(
            "unhandled_error", extra={"status": 500, "route": request.url.path}
        )
        event_id = capture_exception(exc)
        payload = err(500, "Internal Server Error")
        if event_id:
            payload["error_id"] = event_id
        return JSONResponse(payload, status_code=500)

    # the stream route must precede ``/api/orders/{order_id}``
    app.include_router(orders_sse_router)
    app.include_router(orders_router)
    app.include_router(health_router)
    app.include_router(metrics_router)
    return app


app = create_app()
