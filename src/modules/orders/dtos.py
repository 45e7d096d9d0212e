"""Order DTOs for the Service Layer.

Pydantic v2 contracts between the API layer and ``OrderService``.
DTOs are immutable (``frozen=True``).

- ``PlaceOrderItemDTO``: one requested (product, quantity) line.
- ``PlaceOrderDTO``: customer fields plus the ordered list of lines.
"""

from __future__ import annotations

from typing import List
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, field_validator


class PlaceOrderItemDTO(BaseModel):
    """A requested line.  ``unit_price`` is resolved from the catalog."""

    model_config = ConfigDict(frozen=True)

    product_id: UUID
    quantity: int

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v


class PlaceOrderDTO(BaseModel):
    """Order placement request.

    Validates:
    - customer name and shipping address are non-blank.
    - ``customer_email`` is a well-formed address (Pydantic ``EmailStr``),
      stored lower-cased.
    - ``items`` contains at least one line.

    The same product may appear on several lines; each line is reserved
    on its own, in request order.
    """

    model_config = ConfigDict(frozen=True)

    customer_name: str
    customer_email: EmailStr
    shipping_address: str
    items: List[PlaceOrderItemDTO]

    @field_validator("customer_name", "shipping_address")
    @classmethod
    def must_not_be_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Field must not be blank.")
        return v.strip()

    @field_validator("customer_email", mode="before")
    @classmethod
    def strip_email(cls, v: str) -> str:
        if not isinstance(v, str):
            return v
        return v.strip()

    @field_validator("customer_email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(
        cls, v: List[PlaceOrderItemDTO]
    ) -> List[PlaceOrderItemDTO]:
        if not v:
            raise ValueError("Order must have at least one item.")
        return v
