from decimal import Decimal

import pytest
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError

from dineflow.app.models import (
    MenuItem,
    Order,
    OrderCancellation,
    OrderItem,
    RestaurantTable,
)

PIZZA = {
    "menu_item_id": 1,
    "name": "Margherita Pizza",
    "quantity": 1,
    "price_inr": 299,
    "price_usd": 3.99,
}


async def _count(sessions, model) -> int:
    async with sessions() as session:
        return (await session.execute(select(func.count()).select_from(model))).scalar_one()


@pytest.mark.anyio
async def test_deleting_table_cascades_to_orders(engine, sessions):
    order = await engine.create_order(3, [PIZZA, PIZZA])
    await engine.cancel_order_item(order["id"], order["items"][0]["id"], "spilled")
    other = await engine.create_order(4, [PIZZA])

    async with sessions() as session:
        await session.execute(delete(RestaurantTable).where(RestaurantTable.table_number == 3))
        await session.commit()

    assert await _count(sessions, Order) == 1
    assert await _count(sessions, OrderItem) == 1
    assert await _count(sessions, OrderCancellation) == 0
    assert (await engine.get_order(other["id"]))["table_number"] == 4


@pytest.mark.anyio
async def test_deleting_menu_item_keeps_snapshot(engine, sessions):
    order = await engine.create_order(3, [PIZZA])

    async with sessions() as session:
        await session.execute(delete(MenuItem).where(MenuItem.id == 1))
        await session.commit()

    item = (await engine.get_order(order["id"]))["items"][0]
    assert item["menu_item_id"] is None
    assert item["item_name"] == "Margherita Pizza"
    assert item["price_inr"] == "299.00"


@pytest.mark.anyio
async def test_item_quantity_must_be_positive(engine, sessions):
    order = await engine.create_order(3, [PIZZA])

    async with sessions() as session:
        session.add(
            OrderItem(
                order_id=order["id"],
                item_name="Ghost",
                quantity=0,
                price_inr=Decimal("1"),
                price_usd=Decimal("1"),
            )
        )
        with pytest.raises(IntegrityError):
            await session.commit()
