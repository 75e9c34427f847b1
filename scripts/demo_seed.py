#!/usr/bin/env python3
"""Seed demo data: ten dining tables and the sample menu.

Tables are numbered 1-10 and their QR payload is ``table-<n>``. Pass
``--reset`` to purge existing orders, menu items and tables before seeding.
"""

from __future__ import annotations

import argparse
import asyncio
import json
from decimal import Decimal

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from config import get_settings
from dineflow.app.db import create_all, get_engine, make_sessionmaker
from dineflow.app.models import MenuItem, Order, RestaurantTable

MENU_ITEMS = [
    ("Margherita Pizza", "Classic pizza with tomato, mozzarella, and basil", "299.00", "3.99", "Main Course"),
    ("Chicken Biryani", "Aromatic rice dish with spiced chicken", "349.00", "4.49", "Main Course"),
    ("Paneer Tikka", "Grilled cottage cheese with Indian spices", "249.00", "3.29", "Appetizer"),
    ("Caesar Salad", "Fresh romaine lettuce with Caesar dressing", "199.00", "2.69", "Salad"),
    ("Masala Dosa", "Crispy rice crepe with potato filling", "149.00", "1.99", "Main Course"),
    ("Chocolate Brownie", "Rich chocolate dessert with ice cream", "179.00", "2.39", "Dessert"),
    ("Mango Lassi", "Traditional yogurt-based mango drink", "89.00", "1.19", "Beverage"),
    ("Coffee", "Freshly brewed coffee", "79.00", "1.09", "Beverage"),
]

TABLE_COUNT = 10


async def _reset(session: AsyncSession) -> None:
    """Remove existing orders, menu items and tables."""

    for model in (Order, MenuItem, RestaurantTable):
        await session.execute(delete(model))
    await session.commit()


async def _seed(session: AsyncSession) -> dict[str, object]:
    """Insert demo data and return created identifiers."""

    items = []
    for name, description, price_inr, price_usd, category in MENU_ITEMS:
        item = MenuItem(
            name=name,
            description=description,
            price_inr=Decimal(price_inr),
            price_usd=Decimal(price_usd),
            category=category,
        )
        session.add(item)
        await session.flush()
        items.append({"id": item.id, "name": name})

    tables = []
    for number in range(1, TABLE_COUNT + 1):
        table = RestaurantTable(
            table_number=number,
            table_name=f"Table {number}",
            qr_code_data=f"table-{number}",
        )
        session.add(table)
        tables.append(number)

    await session.commit()
    return {"items": items, "tables": tables}


async def main(reset: bool) -> None:
    engine = get_engine(get_settings().database_url)
    try:
        await create_all(engine)
        async with make_sessionmaker(engine)() as session:
            if reset:
                await _reset(session)
            data = await _seed(session)
    finally:
        await engine.dispose()
    print(json.dumps(data))


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed demo tables and menu")
    parser.add_argument(
        "--reset", action="store_true", help="Purge existing data before seeding"
    )
    args = parser.parse_args()
    asyncio.run(main(args.reset))
