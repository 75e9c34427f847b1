"""Read-only lookups into the table and menu catalog."""

from abc import ABC, abstractmethod


class CatalogRepo(ABC):
    """Contract used by the order engine to resolve catalog references."""

    @abstractmethod
    async def resolve_table(self, session, table_number):
        """Return the active table numbered ``table_number`` or ``None``."""
        raise NotImplementedError

    @abstractmethod
    async def get_menu_item(self, session, menu_item_id):
        """Return the menu item ``menu_item_id`` or ``None``."""
        raise NotImplementedError
