"""SQLAlchemy-backed repository helpers for orders.

These helpers implement order storage without any side effects beyond
database mutations. They operate on ``AsyncSession`` instances inside a
transaction opened by the caller and never commit on their own. Order items
snapshot the submitted name and prices so that historical records are
retained even if the menu changes later.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, List

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Order, OrderCancellation, OrderItem
from ..repos.orders_repo import OrdersRepo


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime; naive values are taken as UTC.

    Stored timestamps are UTC, and SQLite compares them as text, so a bound
    value must be in UTC before it is compared.
    """

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass
class OrderFilter:
    """Criteria for :meth:`OrdersRepoSQL.list_orders`; ``None`` means any."""

    status: str | None = None
    statuses: tuple[str, ...] | None = None
    table_number: int | None = None
    customer_id: int | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None


class OrdersRepoSQL(OrdersRepo):
    async def insert_order(self, session: AsyncSession, **values) -> Order:
        order = Order(**values)
        session.add(order)
        await session.flush()  # obtain order.id
        return order

    async def insert_order_item(
        self, session: AsyncSession, order_id: int, line: dict
    ) -> OrderItem:
        item = OrderItem(
            order_id=order_id,
            menu_item_id=line.get("menu_item_id"),
            item_name=line["name"],
            quantity=line["quantity"],
            price_inr=line["price_inr"],
            price_usd=line["price_usd"],
        )
        session.add(item)
        await session.flush()
        return item

    async def get_order(self, session: AsyncSession, order_id: int) -> Order | None:
        result = await session.execute(
            select(Order)
            .where(Order.id == order_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def items_for(
        self, session: AsyncSession, order_ids: Iterable[int]
    ) -> Dict[int, List[OrderItem]]:
        ids = list(order_ids)
        grouped: Dict[int, List[OrderItem]] = defaultdict(list)
        if not ids:
            return grouped
        result = await session.execute(
            select(OrderItem)
            .where(OrderItem.order_id.in_(ids))
            .order_by(OrderItem.id)
            .execution_options(populate_existing=True)
        )
        for item in result.scalars():
            grouped[item.order_id].append(item)
        return grouped

    async def update_order_status(
        self, session: AsyncSession, order_id: int, status: str, **extra
    ) -> int:
        result = await session.execute(
            update(Order)
            .where(Order.id == order_id)
            .values(order_status=status, **extra)
        )
        return result.rowcount

    async def update_order_item_status(
        self, session: AsyncSession, order_id: int, item_id: int, status: str
    ) -> int:
        result = await session.execute(
            update(OrderItem)
            .where(OrderItem.id == item_id, OrderItem.order_id == order_id)
            .values(item_status=status)
        )
        return result.rowcount

    async def insert_cancellation(
        self,
        session: AsyncSession,
        order_id: int,
        item_id: int | None,
        reason: str,
        cancelled_by: str,
    ) -> OrderCancellation:
        record = OrderCancellation(
            order_id=order_id,
            item_id=item_id,
            reason=reason,
            cancelled_by=cancelled_by,
        )
        session.add(record)
        await session.flush()
        return record

    async def list_orders(
        self, session: AsyncSession, order_filter: OrderFilter
    ) -> List[Order]:
        stmt = select(Order)
        if order_filter.status:
            stmt = stmt.where(Order.order_status == order_filter.status)
        if order_filter.statuses:
            stmt = stmt.where(Order.order_status.in_(order_filter.statuses))
        if order_filter.table_number is not None:
            stmt = stmt.where(Order.table_number == order_filter.table_number)
        if order_filter.customer_id is not None:
            stmt = stmt.where(Order.customer_id == order_filter.customer_id)
        if order_filter.start_date is not None:
            stmt = stmt.where(Order.created_at >= as_utc(order_filter.start_date))
        if order_filter.end_date is not None:
            stmt = stmt.where(Order.created_at <= as_utc(order_filter.end_date))
        stmt = stmt.order_by(Order.created_at.desc(), Order.id.desc())
        result = await session.execute(
            stmt.execution_options(populate_existing=True)
        )
        return list(result.scalars())

    async def list_cancellations(
        self, session: AsyncSession, order_id: int
    ) -> List[OrderCancellation]:
        result = await session.execute(
            select(OrderCancellation)
            .where(OrderCancellation.order_id == order_id)
            .order_by(OrderCancellation.id)
        )
        return list(result.scalars())
