"""Repository interface for order persistence.

Every method runs against the caller's ``AsyncSession``; the order engine
owns transaction boundaries and commits or rolls back around these calls.
"""

from abc import ABC, abstractmethod


class OrdersRepo(ABC):
    """Contract for order, order item and cancellation storage."""

    @abstractmethod
    async def insert_order(self, session, **values):
        """Insert an order row and return it with its generated id."""
        raise NotImplementedError

    @abstractmethod
    async def insert_order_item(self, session, order_id, line):
        """Insert one snapshotted line item for ``order_id``."""
        raise NotImplementedError

    @abstractmethod
    async def get_order(self, session, order_id):
        """Return the order row for ``order_id`` or ``None``."""
        raise NotImplementedError

    @abstractmethod
    async def items_for(self, session, order_ids):
        """Return a mapping of order id to its items in insertion order."""
        raise NotImplementedError

    @abstractmethod
    async def update_order_status(self, session, order_id, status, **extra):
        """Write ``status`` for ``order_id`` and return the affected row count."""
        raise NotImplementedError

    @abstractmethod
    async def update_order_item_status(self, session, order_id, item_id, status):
        """Write ``status`` for the item if it belongs to ``order_id``."""
        raise NotImplementedError

    @abstractmethod
    async def insert_cancellation(self, session, order_id, item_id, reason, cancelled_by):
        """Append a cancellation record."""
        raise NotImplementedError

    @abstractmethod
    async def list_orders(self, session, order_filter):
        """Return orders matching ``order_filter``, newest first."""
        raise NotImplementedError

    @abstractmethod
    async def list_cancellations(self, session, order_id):
        """Return cancellation records for ``order_id``, oldest first."""
        raise NotImplementedError
