"""SQLAlchemy lookups for tables and menu items."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import MenuItem, RestaurantTable
from ..repos.catalog_repo import CatalogRepo


class CatalogRepoSQL(CatalogRepo):
    async def resolve_table(
        self, session: AsyncSession, table_number: int
    ) -> RestaurantTable | None:
        result = await session.execute(
            select(RestaurantTable).where(
                RestaurantTable.table_number == table_number,
                RestaurantTable.is_active.is_(True),
            )
        )
        return result.scalar_one_or_none()

    async def get_menu_item(
        self, session: AsyncSession, menu_item_id: int
    ) -> MenuItem | None:
        return await session.get(MenuItem, menu_item_id)
