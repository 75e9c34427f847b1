"""Async engine and session factory helpers.

The application owns one :class:`AsyncEngine` and hands an
``async_sessionmaker`` to the order engine; every logical operation opens its
own session from that factory and closes it before returning.
"""

from __future__ import annotations

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from ..models import Base
from ..obs import add_query_logger


def _enable_sqlite_foreign_keys(engine: AsyncEngine) -> None:
    """Turn on ``ON DELETE CASCADE`` support for SQLite connections."""

    @event.listens_for(engine.sync_engine, "connect")
    def _set_pragma(dbapi_conn, _record):  # type: ignore[no-untyped-def]
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def get_engine(url: str) -> AsyncEngine:
    """Create an :class:`AsyncEngine` for ``url`` with query logging attached."""

    kwargs: dict = {}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in url or url.rstrip("/").endswith("sqlite+aiosqlite:"):
            kwargs["poolclass"] = StaticPool
    engine = create_async_engine(url, **kwargs)
    if engine.dialect.name == "sqlite":
        _enable_sqlite_foreign_keys(engine)
    add_query_logger(engine)
    return engine


def make_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Return a session factory that keeps loaded values after commit."""

    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


async def create_all(engine: AsyncEngine) -> None:
    """Create every table known to :data:`Base.metadata`."""

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def create_test_session() -> tuple[async_sessionmaker[AsyncSession], AsyncEngine]:
    """Return a session factory and engine for tests.

    The database uses an in-memory SQLite engine with a static pool so that
    multiple sessions share the same data.
    """

    engine = get_engine("sqlite+aiosqlite:///:memory:")
    await create_all(engine)
    return make_sessionmaker(engine), engine


__all__ = ["get_engine", "make_sessionmaker", "create_all", "create_test_session"]
