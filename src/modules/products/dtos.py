"""Product DTOs for the Service Layer.

Pydantic v2 models forming the contract between the API layer and
``ProductService``.  DTOs are immutable (``frozen=True``).

Field bounds mirror the model columns (``price`` is ``NUMERIC(10, 2)``,
``name`` is 255 characters) so out-of-range input is rejected here rather
than by ``full_clean`` at save time.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Annotated, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

Price = Annotated[Decimal, Field(ge=0, max_digits=10, decimal_places=2)]
ProductName = Annotated[str, Field(max_length=255)]
StockQuantity = Annotated[int, Field(ge=0)]


def _strip_name(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    if not v.strip():
        raise ValueError("Name must not be empty.")
    return v.strip()


class CreateCategoryDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: Annotated[str, Field(max_length=100)]
    description: Annotated[str, Field(max_length=500)] = ""

    @field_validator("name")
    @classmethod
    def name_must_not_be_blank(cls, v: Optional[str]) -> Optional[str]:
        return _strip_name(v)


class CreateProductDTO(BaseModel):
    """Input for product creation.

    Validates:
    - ``name`` is a non-empty string (stripped).
    - ``price`` is a non-negative Decimal with at most 2 places.
    - ``stock_quantity`` is non-negative.
    """

    model_config = ConfigDict(frozen=True)

    name: ProductName
    price: Price
    description: str = ""
    stock_quantity: StockQuantity = 0
    is_active: bool = True
    category_id: Optional[UUID] = None

    @field_validator("name")
    @classmethod
    def name_must_not_be_blank(cls, v: Optional[str]) -> Optional[str]:
        return _strip_name(v)


class UpdateProductDTO(BaseModel):
    """Input for partial product updates; ``None`` means "leave unchanged"."""

    model_config = ConfigDict(frozen=True)

    name: Optional[ProductName] = None
    price: Optional[Price] = None
    description: Optional[str] = None
    stock_quantity: Optional[StockQuantity] = None
    is_active: Optional[bool] = None
    category_id: Optional[UUID] = None

    @field_validator("name")
    @classmethod
    def name_must_not_be_blank(cls, v: Optional[str]) -> Optional[str]:
        return _strip_name(v)

    def changes(self) -> dict:
        """Return only the fields the caller actually supplied."""
        return self.model_dump(exclude_none=True)
