"""Database models for tables, menu items and the order lifecycle.

``RestaurantTable`` and ``MenuItem`` belong to the catalog and are only read by
the order engine. Orders, their items and cancellation records are written
exclusively through :mod:`dineflow.app.services.order_engine`.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import declarative_base

from .domain import ItemStatus, OrderStatus

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RestaurantTable(Base):
    """Dining tables addressed by the number printed on their QR code."""

    __tablename__ = "restaurant_tables"

    id = Column(Integer, primary_key=True)
    table_number = Column(Integer, unique=True, nullable=False)
    table_name = Column(String(100), nullable=False)
    qr_code_data = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now())


class MenuItem(Base):
    """Menu entries priced in both supported currencies."""

    __tablename__ = "menu_items"

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    price_inr = Column(Numeric(10, 2), nullable=False)
    price_usd = Column(Numeric(10, 2), nullable=False)
    category = Column(String(100), nullable=True)
    is_available = Column(Boolean, nullable=False, default=True)
    updated_at = Column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )


class Order(Base):
    """An order placed from a table.

    Totals are snapshotted at creation and never recomputed.
    """

    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    table_id = Column(
        Integer, ForeignKey("restaurant_tables.id", ondelete="CASCADE"), nullable=False
    )
    table_number = Column(Integer, nullable=False)
    customer_id = Column(Integer, nullable=True)
    staff_id = Column(Integer, nullable=True)
    currency = Column(String(3), nullable=False, default="INR")
    payment_method = Column(String(20), nullable=False, default="cash")
    payment_status = Column(String(20), nullable=False, default="pending")
    order_status = Column(
        String(20), nullable=False, default=OrderStatus.PENDING.value
    )
    total_amount_inr = Column(Numeric(10, 2), nullable=False)
    total_amount_usd = Column(Numeric(10, 2), nullable=False)
    preparation_time = Column(Integer, nullable=True)
    service_time = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (
        Index("ix_orders_status_created", "order_status", "created_at"),
        Index("ix_orders_table_number", "table_number"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "table_id": self.table_id,
            "table_number": self.table_number,
            "customer_id": self.customer_id,
            "staff_id": self.staff_id,
            "currency": self.currency,
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "order_status": self.order_status,
            "total_amount_inr": self.total_amount_inr,
            "total_amount_usd": self.total_amount_usd,
            "preparation_time": self.preparation_time,
            "service_time": self.service_time,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


class OrderItem(Base):
    """Line items belonging to an order, with name and prices snapshotted."""

    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(
        Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False
    )
    menu_item_id = Column(
        Integer, ForeignKey("menu_items.id", ondelete="SET NULL"), nullable=True
    )
    item_name = Column(String(200), nullable=False)
    quantity = Column(Integer, nullable=False)
    price_inr = Column(Numeric(10, 2), nullable=False)
    price_usd = Column(Numeric(10, 2), nullable=False)
    item_status = Column(String(20), nullable=False, default=ItemStatus.ACTIVE.value)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_order_items_quantity_positive"),
        Index("ix_order_items_order_id", "order_id"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "menu_item_id": self.menu_item_id,
            "item_name": self.item_name,
            "quantity": self.quantity,
            "price_inr": self.price_inr,
            "price_usd": self.price_usd,
            "item_status": self.item_status,
            "created_at": self.created_at,
        }


class OrderCancellation(Base):
    """Append-only audit log of order and item cancellations.

    ``item_id`` is ``NULL`` for whole-order cancellations.
    """

    __tablename__ = "order_cancellations"

    id = Column(Integer, primary_key=True)
    order_id = Column(
        Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False
    )
    item_id = Column(
        Integer, ForeignKey("order_items.id", ondelete="CASCADE"), nullable=True
    )
    reason = Column(Text, nullable=False)
    cancelled_by = Column(String(50), nullable=False, default="customer")
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "item_id": self.item_id,
            "reason": self.reason,
            "cancelled_by": self.cancelled_by,
            "created_at": self.created_at,
        }
