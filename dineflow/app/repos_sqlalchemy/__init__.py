"""SQLAlchemy-backed repository implementations."""

from .catalog_repo_sql import CatalogRepoSQL
from .orders_repo_sql import OrderFilter, OrdersRepoSQL

__all__ = ["CatalogRepoSQL", "OrderFilter", "OrdersRepoSQL"]
