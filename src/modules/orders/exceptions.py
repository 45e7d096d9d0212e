"""Order domain exceptions.

Raised by the Service Layer and the state machine.  Views translate them
into HTTP responses; ``OrderItemsFrozen`` signals a programming error and
is never translated.
"""

from __future__ import annotations

from typing import Any


class OrderNotFound(Exception):
    """The requested order does not exist."""

    def __init__(self, reference: Any) -> None:
        self.reference = reference
        super().__init__(f"Order {reference} not found.")


class InvalidOrderStatus(Exception):
    """The requested operation is not allowed in the order's current status."""

    def __init__(self, current_status: str, operation: str, reason: str = "") -> None:
        self.current_status = current_status
        self.operation = operation
        message = reason or f"Cannot {operation} order in status {current_status}."
        super().__init__(message)


class OrderItemsFrozen(Exception):
    """Line items were added to an order that has already been persisted."""
