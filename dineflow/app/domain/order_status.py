"""Order status enumeration and allowed transitions."""

from __future__ import annotations

from enum import Enum


class OrderStatus(str, Enum):
    """Enumerate the lifecycle states for an order."""

    PENDING = "pending"
    PREPARING = "preparing"
    READY = "ready"
    SERVED = "served"
    CANCELLED = "cancelled"


class ItemStatus(str, Enum):
    """States for a single order line."""

    ACTIVE = "active"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"


class CancelledBy(str, Enum):
    """Role that initiated a cancellation."""

    CUSTOMER = "customer"
    STAFF = "staff"


TRANSITIONS: dict[OrderStatus, list[OrderStatus]] = {
    OrderStatus.PENDING: [
        OrderStatus.PREPARING,
        OrderStatus.READY,
        OrderStatus.SERVED,
        OrderStatus.CANCELLED,
    ],
    OrderStatus.PREPARING: [
        OrderStatus.READY,
        OrderStatus.SERVED,
        OrderStatus.CANCELLED,
    ],
    OrderStatus.READY: [OrderStatus.SERVED, OrderStatus.CANCELLED],
    OrderStatus.SERVED: [],
    OrderStatus.CANCELLED: [],
}

TERMINAL = frozenset(status for status, nxt in TRANSITIONS.items() if not nxt)


def can_transition(src: OrderStatus, dst: OrderStatus) -> bool:
    """Return ``True`` if an order can move from ``src`` to ``dst``.

    Re-applying the current status is always allowed so that repeated
    cancellations and retried status writes stay idempotent.
    """

    return src == dst or dst in TRANSITIONS.get(src, [])


def payment_status_for(payment_method: str) -> PaymentStatus:
    """Cash is settled at the table; every other method is prepaid."""

    if payment_method.strip().lower() == "cash":
        return PaymentStatus.PENDING
    return PaymentStatus.PAID
