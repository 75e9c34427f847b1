"""Service layer helpers for the API."""

from .order_engine import OrderEngine, compute_totals, normalize_lines

__all__ = ["OrderEngine", "compute_totals", "normalize_lines"]
