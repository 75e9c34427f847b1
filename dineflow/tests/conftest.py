"""Shared fixtures for order engine and API tests."""

from __future__ import annotations

import pathlib
import sys
from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient

sys.path.append(str(pathlib.Path(__file__).resolve().parents[2]))

from dineflow.app.db import create_test_session  # noqa: E402
from dineflow.app.events import EventBus  # noqa: E402
from dineflow.app.main import create_app  # noqa: E402
from dineflow.app.models import MenuItem, RestaurantTable  # noqa: E402
from dineflow.app.services.order_engine import OrderEngine  # noqa: E402

INACTIVE_TABLE = 11  # seeded but not active


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
async def sessions():
    """Session factory bound to a fresh in-memory database with demo data."""

    factory, engine = await create_test_session()
    async with factory() as session:
        for number in range(1, 11):
            session.add(
                RestaurantTable(table_number=number, table_name=f"Table {number}")
            )
        session.add(
            RestaurantTable(
                table_number=INACTIVE_TABLE, table_name="Patio", is_active=False
            )
        )
        session.add(
            MenuItem(
                id=1,
                name="Margherita Pizza",
                price_inr=Decimal("299.00"),
                price_usd=Decimal("3.99"),
                category="Main Course",
            )
        )
        session.add(
            MenuItem(
                id=2,
                name="Mango Lassi",
                price_inr=Decimal("89.00"),
                price_usd=Decimal("1.19"),
                category="Beverage",
            )
        )
        await session.commit()
    yield factory
    await engine.dispose()


@pytest.fixture
def bus() -> EventBus:
    return EventBus(maxsize=10, keepalive=0.05)


@pytest.fixture
async def engine(sessions, bus):
    order_engine = OrderEngine(sessions, bus)
    yield order_engine
    await order_engine.aclose()


@pytest.fixture
async def strict_engine(sessions, bus):
    order_engine = OrderEngine(sessions, bus, strict_transitions=True)
    yield order_engine
    await order_engine.aclose()


@pytest.fixture
def app(engine, bus):
    application = create_app()
    application.state.order_engine = engine
    application.state.broadcaster = bus
    application.state.redis = None
    return application


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
