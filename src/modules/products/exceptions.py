"""Product domain exceptions.

Raised by repositories and services; the API layer translates them into
HTTP responses.
"""

from __future__ import annotations

from typing import Any


class ProductNotFound(Exception):
    """The requested product does not exist."""

    def __init__(self, product_id: Any) -> None:
        self.product_id = product_id
        super().__init__(f"Product {product_id} not found.")


class InsufficientStock(Exception):
    """A reservation asked for more units than are on hand.

    Carries the figures the caller needs to adjust the request.
    """

    def __init__(self, product_id: Any, requested: int, available: int) -> None:
        self.product_id = product_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for product {product_id}: "
            f"requested {requested}, available {available}."
        )


class CategoryNotFound(Exception):
    """The referenced category does not exist."""

    def __init__(self, category_id: Any) -> None:
        self.category_id = category_id
        super().__init__(f"Category {category_id} not found.")
