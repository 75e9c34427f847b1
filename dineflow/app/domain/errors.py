"""Errors raised by the order lifecycle engine.

Each error carries a stable ``code`` and the HTTP status that the API layer
maps it to, so routes never need to inspect storage details.
"""

from __future__ import annotations


class OrderError(Exception):
    code = "ORDER_ERROR"
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidInput(OrderError):
    """Request data is missing or malformed."""

    code = "INVALID_INPUT"
    status_code = 400


class InvalidTransition(InvalidInput):
    """A status change not permitted by the transition table."""

    code = "INVALID_TRANSITION"
    status_code = 409


class NotFound(OrderError):
    """Unknown table number, order id or order/item pair."""

    code = "NOT_FOUND"
    status_code = 404


class StorageFailure(OrderError):
    """The database rejected or failed a write; the transaction was rolled back."""

    code = "STORAGE_FAILURE"
    status_code = 500
