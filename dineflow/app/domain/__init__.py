"""Domain models and helpers."""

from .errors import InvalidInput, InvalidTransition, NotFound, OrderError, StorageFailure
from .order_status import (
    TERMINAL,
    TRANSITIONS,
    CancelledBy,
    ItemStatus,
    OrderStatus,
    PaymentStatus,
    can_transition,
    payment_status_for,
)

__all__ = [
    "OrderStatus",
    "ItemStatus",
    "PaymentStatus",
    "CancelledBy",
    "TRANSITIONS",
    "TERMINAL",
    "can_transition",
    "payment_status_for",
    "OrderError",
    "InvalidInput",
    "InvalidTransition",
    "NotFound",
    "StorageFailure",
]
