# schemas.py

"""Pydantic models for API payloads.

Field checks that carry domain meaning (positive quantities, required prices,
non-empty reasons) are left to the order engine so that every caller gets the
same error codes. Fields accept both snake_case and the camelCase names used
by the ordering web client.
"""

from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, Field


class OrderLineIn(BaseModel):
    """Single line item for an order."""

    menu_item_id: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("menu_item_id", "menuItemId", "id")
    )
    name: Optional[str] = None
    quantity: int
    price_inr: Optional[Decimal] = Field(
        default=None, validation_alias=AliasChoices("price_inr", "priceInr")
    )
    price_usd: Optional[Decimal] = Field(
        default=None, validation_alias=AliasChoices("price_usd", "priceUsd")
    )


class OrderIn(BaseModel):
    """Payload for placing an order from a table."""

    table_number: int = Field(validation_alias=AliasChoices("table_number", "tableNumber"))
    items: List[OrderLineIn]
    currency: str = "INR"
    payment_method: str = Field(
        default="cash", validation_alias=AliasChoices("payment_method", "paymentMethod")
    )
    customer_id: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("customer_id", "customerId")
    )


class OrderStatusIn(BaseModel):
    order_status: str = Field(validation_alias=AliasChoices("order_status", "orderStatus"))


class CancelIn(BaseModel):
    """Payload for cancelling an order or one of its items."""

    reason: str
    cancelled_by: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("cancelled_by", "cancelledBy")
    )
