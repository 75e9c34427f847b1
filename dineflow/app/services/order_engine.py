"""Order lifecycle engine.

The engine is the only writer of orders, order items and cancellation
records. Each public coroutine is one logical unit of work: it opens a
session from the injected factory, performs its writes inside a single
transaction, reads the committed rows back and then queues an event.
Queued events are delivered in order by a background worker, so a slow or
failing broadcaster never delays or fails the operation. Payloads are encoded
once: money as two-decimal strings and timestamps as ISO 8601, so API
responses and broadcast events carry identical values.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Mapping, Sequence

from fastapi.encoders import jsonable_encoder
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..domain import (
    TERMINAL,
    CancelledBy,
    InvalidInput,
    InvalidTransition,
    ItemStatus,
    NotFound,
    OrderStatus,
    StorageFailure,
    can_transition,
    payment_status_for,
)
from ..events import NEW_ORDER, ORDER_STATUS_UPDATED, Broadcaster
from ..obs import bind_order
from ..repos.catalog_repo import CatalogRepo
from ..repos.orders_repo import OrdersRepo
from ..repos_sqlalchemy import CatalogRepoSQL, OrderFilter, OrdersRepoSQL
from ..routes_metrics import (
    broadcast_failures_total,
    order_cancellations_total,
    order_status_updates_total,
    orders_created_total,
)

CENTS = Decimal("0.01")
CURRENCIES = ("INR", "USD")

logger = logging.getLogger("orders")


@contextmanager
def _storage_errors(action: str, order_id: int | None = None):
    """Translate database errors raised inside the block into ``StorageFailure``.

    Logs and slow-query reports from the block are tagged with ``order_id``.
    """

    with bind_order(order_id):
        try:
            yield
        except SQLAlchemyError as exc:
            logger.exception("storage failure during %s", action)
            raise StorageFailure(f"Failed to {action}") from exc


def _to_money(value: Any, label: str) -> Decimal:
    if value is None or isinstance(value, bool):
        raise InvalidInput(f"{label} is required")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidInput(f"{label} must be a number") from None
    if not amount.is_finite() or amount < 0:
        raise InvalidInput(f"{label} must be a non-negative number")
    return amount


def normalize_lines(items: Any) -> List[Dict[str, Any]]:
    """Validate submitted order lines and return them in canonical form.

    Each line needs a positive integer ``quantity`` and both unit prices. The
    menu reference may be given as ``menu_item_id`` or ``id``. A line without
    a ``name`` must reference a menu item so the name can be looked up. Menu
    references are checked against the catalog when the order is written.
    """

    if not isinstance(items, Sequence) or isinstance(items, (str, bytes)) or not items:
        raise InvalidInput("Order must contain at least one item")

    lines = []
    for idx, raw in enumerate(items, start=1):
        if not isinstance(raw, Mapping):
            raise InvalidInput(f"Item {idx} is malformed")
        quantity = raw.get("quantity")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise InvalidInput(f"Item {idx}: quantity must be a positive integer")
        menu_item_id = raw.get("menu_item_id", raw.get("id"))
        if menu_item_id is not None and (
            isinstance(menu_item_id, bool) or not isinstance(menu_item_id, int)
        ):
            raise InvalidInput(f"Item {idx}: menu_item_id must be an integer")
        name = raw.get("name")
        if isinstance(name, str):
            name = name.strip() or None
        if name is None and menu_item_id is None:
            raise InvalidInput(f"Item {idx}: name or menu_item_id is required")
        lines.append(
            {
                "menu_item_id": menu_item_id,
                "name": name,
                "quantity": quantity,
                "price_inr": _to_money(raw.get("price_inr"), f"Item {idx}: price_inr"),
                "price_usd": _to_money(raw.get("price_usd"), f"Item {idx}: price_usd"),
            }
        )
    return lines


def compute_totals(lines: Iterable[Mapping[str, Any]]) -> tuple[Decimal, Decimal]:
    """Return ``(total_inr, total_usd)`` rounded half-up to two decimals."""

    total_inr = Decimal("0")
    total_usd = Decimal("0")
    for line in lines:
        total_inr += line["price_inr"] * line["quantity"]
        total_usd += line["price_usd"] * line["quantity"]
    return (
        total_inr.quantize(CENTS, rounding=ROUND_HALF_UP),
        total_usd.quantize(CENTS, rounding=ROUND_HALF_UP),
    )


def _minutes_since(ts: datetime | None) -> int | None:
    if ts is None:
        return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    elapsed = (datetime.now(timezone.utc) - ts).total_seconds()
    return max(int(elapsed // 60), 0)


def _parse_status(value: Any) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in OrderStatus)
        raise InvalidInput(f"Invalid order status {value!r}; expected one of {allowed}") from None


def _parse_cancelled_by(value: Any) -> str:
    if value is None:
        return CancelledBy.CUSTOMER.value
    try:
        return CancelledBy(value).value
    except ValueError:
        raise InvalidInput("cancelled_by must be 'customer' or 'staff'") from None


def _require_reason(reason: Any) -> str:
    if not isinstance(reason, str) or not reason.strip():
        raise InvalidInput("A cancellation reason is required")
    return reason.strip()


def _money(value: Decimal) -> str:
    return format(value.quantize(CENTS, rounding=ROUND_HALF_UP), "f")


def encode(data: Any) -> Any:
    """Return ``data`` as JSON-safe values with money rendered as strings."""

    return jsonable_encoder(data, custom_encoder={Decimal: _money})


def _order_payload(order, items=None) -> Dict[str, Any]:
    data = order.to_dict()
    if items is not None:
        data["items"] = [item.to_dict() for item in items]
    return encode(data)


class OrderEngine:
    """Create orders and drive them through their status lifecycle.

    ``strict_transitions`` enables the forward-only transition table from
    :mod:`dineflow.app.domain.order_status`. When disabled any known status
    may be written, which matches how existing dashboards use the API.
    """

    def __init__(
        self,
        sessions: async_sessionmaker[AsyncSession],
        broadcaster: Broadcaster,
        *,
        orders: OrdersRepo | None = None,
        catalog: CatalogRepo | None = None,
        strict_transitions: bool = False,
        publish_timeout: float = 2.0,
    ) -> None:
        self.sessions = sessions
        self.broadcaster = broadcaster
        self.orders = orders or OrdersRepoSQL()
        self.catalog = catalog or CatalogRepoSQL()
        self.strict_transitions = strict_transitions
        self.publish_timeout = publish_timeout
        self._outbox: asyncio.Queue | None = None
        self._worker: asyncio.Task | None = None

    async def create_order(
        self,
        table_number: int,
        items: Sequence[Mapping[str, Any]],
        currency: str = "INR",
        payment_method: str = "cash",
        customer_id: int | None = None,
    ) -> Dict[str, Any]:
        """Persist an order with its items and announce it as ``new-order``."""

        if isinstance(table_number, bool) or not isinstance(table_number, int):
            raise InvalidInput("table_number must be an integer")
        lines = normalize_lines(items)
        currency = (currency or "").upper()
        if currency not in CURRENCIES:
            raise InvalidInput(f"currency must be one of {', '.join(CURRENCIES)}")
        if not isinstance(payment_method, str) or not payment_method.strip():
            raise InvalidInput("payment_method is required")
        payment_method = payment_method.strip()
        total_inr, total_usd = compute_totals(lines)

        async with self.sessions() as session:
            with _storage_errors("create order"):
                async with session.begin():
                    table = await self.catalog.resolve_table(session, table_number)
                    if table is None:
                        raise NotFound(f"Table {table_number} not found")

                    for line in lines:
                        if line["menu_item_id"] is None:
                            continue
                        menu_item = await self.catalog.get_menu_item(
                            session, line["menu_item_id"]
                        )
                        if menu_item is None:
                            raise NotFound(f"Menu item {line['menu_item_id']} not found")
                        if line["name"] is None:
                            line["name"] = menu_item.name

                    order = await self.orders.insert_order(
                        session,
                        table_id=table.id,
                        table_number=table_number,
                        customer_id=customer_id,
                        currency=currency,
                        payment_method=payment_method,
                        payment_status=payment_status_for(payment_method).value,
                        order_status=OrderStatus.PENDING.value,
                        total_amount_inr=total_inr,
                        total_amount_usd=total_usd,
                    )
                    order_id = order.id
                    for line in lines:
                        await self.orders.insert_order_item(session, order_id, line)

                order = await self.orders.get_order(session, order_id)
                items_by_order = await self.orders.items_for(session, [order_id])

        payload = _order_payload(order, items_by_order.get(order_id, []))
        orders_created_total.inc()
        logger.info(
            "order %s created for table %s", order_id, table_number,
            extra={"order_id": order_id},
        )
        await self._publish(NEW_ORDER, payload)
        return payload

    async def update_order_status(self, order_id: int, new_status: Any) -> Dict[str, Any]:
        """Write ``new_status`` and announce the order as ``order-status-updated``.

        Moving to ``ready`` records the preparation time and moving to
        ``served`` records the service time, both in whole minutes since the
        order was placed.
        """

        target = _parse_status(new_status)

        async with self.sessions() as session:
            with _storage_errors("update order status", order_id):
                async with session.begin():
                    order = await self.orders.get_order(session, order_id)
                    if order is None:
                        raise NotFound(f"Order {order_id} not found")
                    self._check_transition(order, target)

                    extra: Dict[str, Any] = {}
                    if target is OrderStatus.READY and order.preparation_time is None:
                        extra["preparation_time"] = _minutes_since(order.created_at)
                    if target is OrderStatus.SERVED and order.service_time is None:
                        extra["service_time"] = _minutes_since(order.created_at)
                    await self.orders.update_order_status(
                        session, order_id, target.value, **extra
                    )

                order = await self.orders.get_order(session, order_id)

        payload = _order_payload(order)
        order_status_updates_total.labels(status=target.value).inc()
        logger.info(
            "order %s moved to %s", order_id, target.value,
            extra={"order_id": order_id},
        )
        await self._publish(ORDER_STATUS_UPDATED, payload)
        return payload

    async def cancel_order(
        self, order_id: int, reason: str, cancelled_by: str | None = None
    ) -> Dict[str, Any]:
        """Cancel the whole order and append a cancellation record.

        Cancelling an already cancelled order succeeds and appends another
        record.
        """

        reason = _require_reason(reason)
        actor = _parse_cancelled_by(cancelled_by)

        async with self.sessions() as session:
            with _storage_errors("cancel order", order_id):
                async with session.begin():
                    order = await self.orders.get_order(session, order_id)
                    if order is None:
                        raise NotFound(f"Order {order_id} not found")
                    self._check_transition(order, OrderStatus.CANCELLED)
                    await self.orders.update_order_status(
                        session, order_id, OrderStatus.CANCELLED.value
                    )
                    record = await self.orders.insert_cancellation(
                        session, order_id, None, reason, actor
                    )

                order = await self.orders.get_order(session, order_id)

        order_cancellations_total.labels(scope="order").inc()
        logger.info(
            "order %s cancelled by %s", order_id, actor, extra={"order_id": order_id}
        )
        await self._publish(ORDER_STATUS_UPDATED, _order_payload(order))
        return encode(record.to_dict())

    async def cancel_order_item(
        self,
        order_id: int,
        item_id: int,
        reason: str,
        cancelled_by: str | None = None,
    ) -> Dict[str, Any]:
        """Cancel one line of an order.

        The order totals are a financial snapshot and stay unchanged.
        """

        reason = _require_reason(reason)
        actor = _parse_cancelled_by(cancelled_by)

        async with self.sessions() as session:
            with _storage_errors("cancel order item", order_id):
                async with session.begin():
                    affected = await self.orders.update_order_item_status(
                        session, order_id, item_id, ItemStatus.CANCELLED.value
                    )
                    if not affected:
                        raise NotFound(f"Item {item_id} not found on order {order_id}")
                    record = await self.orders.insert_cancellation(
                        session, order_id, item_id, reason, actor
                    )

                order = await self.orders.get_order(session, order_id)

        order_cancellations_total.labels(scope="item").inc()
        logger.info(
            "item %s of order %s cancelled by %s", item_id, order_id, actor,
            extra={"order_id": order_id},
        )
        await self._publish(ORDER_STATUS_UPDATED, _order_payload(order))
        return encode(record.to_dict())

    async def get_order(self, order_id: int) -> Dict[str, Any]:
        """Return the order with its items."""

        async with self.sessions() as session:
            with _storage_errors("fetch order", order_id):
                order = await self.orders.get_order(session, order_id)
                if order is None:
                    raise NotFound(f"Order {order_id} not found")
                items = await self.orders.items_for(session, [order_id])
        return _order_payload(order, items.get(order_id, []))

    async def list_orders(self, order_filter: OrderFilter | None = None) -> List[Dict[str, Any]]:
        """Return matching orders, newest first, each with its items."""

        order_filter = order_filter or OrderFilter()
        if order_filter.status is not None:
            _parse_status(order_filter.status)

        async with self.sessions() as session:
            with _storage_errors("list orders"):
                orders = await self.orders.list_orders(session, order_filter)
                items = await self.orders.items_for(session, [o.id for o in orders])
        return [_order_payload(order, items.get(order.id, [])) for order in orders]

    async def list_cancellations(self, order_id: int) -> List[Dict[str, Any]]:
        async with self.sessions() as session:
            with _storage_errors("list cancellations", order_id):
                if await self.orders.get_order(session, order_id) is None:
                    raise NotFound(f"Order {order_id} not found")
                records = await self.orders.list_cancellations(session, order_id)
        return [encode(record.to_dict()) for record in records]

    def _check_transition(self, order, target: OrderStatus) -> None:
        if not self.strict_transitions:
            return
        current = OrderStatus(order.order_status)
        if not can_transition(current, target):
            if current in TERMINAL:
                msg = f"Order {order.id} is already {current.value}"
            else:
                msg = f"Cannot move order {order.id} from {current.value} to {target.value}"
            raise InvalidTransition(msg)

    async def _publish(self, name: str, payload: Dict[str, Any]) -> None:
        """Queue ``payload`` for delivery without waiting on the broadcaster."""

        if self._outbox is None:
            self._outbox = asyncio.Queue()
        self._outbox.put_nowait((name, payload))
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._deliver(self._outbox))

    async def _deliver(self, outbox: asyncio.Queue) -> None:
        """Publish queued events in order; failures are logged and counted."""

        while True:
            name, payload = await outbox.get()
            try:
                await asyncio.wait_for(
                    self.broadcaster.publish(name, payload), self.publish_timeout
                )
            except Exception:
                broadcast_failures_total.labels(event=name).inc()
                logger.exception("failed to publish %s", name)
            finally:
                outbox.task_done()

    async def drain(self) -> None:
        """Wait until every queued event has been handed to the broadcaster."""

        if self._outbox is not None:
            await self._outbox.join()

    async def aclose(self) -> None:
        """Deliver pending events and stop the background worker."""

        await self.drain()
        if self._worker is not None:
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
            self._worker = None
