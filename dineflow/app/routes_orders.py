"""Order placement, status and cancellation routes."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from .deps.orders import get_order_engine
from .repos_sqlalchemy import OrderFilter
from .schemas import CancelIn, OrderIn, OrderStatusIn
from .services.order_engine import OrderEngine
from .utils.responses import ok

router = APIRouter(prefix="/api/orders", tags=["Orders"])


@router.get("")
async def list_orders(
    status: Optional[str] = None,
    table_number: Optional[int] = None,
    customer_id: Optional[int] = None,
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    engine: OrderEngine = Depends(get_order_engine),
):
    """Return orders matching the filters, newest first, with their items."""

    order_filter = OrderFilter(
        status=status,
        table_number=table_number,
        customer_id=customer_id,
        start_date=start_date,
        end_date=end_date,
    )
    return ok(await engine.list_orders(order_filter))


@router.post("")
async def create_order(
    payload: OrderIn, engine: OrderEngine = Depends(get_order_engine)
):
    """Place a new order for ``payload.table_number``."""

    order = await engine.create_order(
        payload.table_number,
        [line.model_dump() for line in payload.items],
        currency=payload.currency,
        payment_method=payload.payment_method,
        customer_id=payload.customer_id,
    )
    return ok(order)


@router.get("/{order_id}")
async def get_order(order_id: int, engine: OrderEngine = Depends(get_order_engine)):
    return ok(await engine.get_order(order_id))


@router.put("/{order_id}/status")
async def update_order_status(
    order_id: int,
    payload: OrderStatusIn,
    engine: OrderEngine = Depends(get_order_engine),
):
    """Move ``order_id`` to ``payload.order_status``."""

    return ok(await engine.update_order_status(order_id, payload.order_status))


@router.post("/{order_id}/cancel")
async def cancel_order(
    order_id: int,
    payload: CancelIn,
    engine: OrderEngine = Depends(get_order_engine),
):
    record = await engine.cancel_order(order_id, payload.reason, payload.cancelled_by)
    return ok({"message": "Order cancelled successfully", "cancellation": record})


@router.post("/{order_id}/items/{item_id}/cancel")
async def cancel_order_item(
    order_id: int,
    item_id: int,
    payload: CancelIn,
    engine: OrderEngine = Depends(get_order_engine),
):
    record = await engine.cancel_order_item(
        order_id, item_id, payload.reason, payload.cancelled_by
    )
    return ok({"message": "Item cancelled successfully", "cancellation": record})


@router.get("/{order_id}/cancellations")
async def list_cancellations(
    order_id: int, engine: OrderEngine = Depends(get_order_engine)
):
    """Return the cancellation audit trail for ``order_id``."""

    return ok(await engine.list_cancellations(order_id))
