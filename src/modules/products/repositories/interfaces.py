"""Product repository interface.

Extends ``IRepository[Product]`` with the stock primitives the order
engine builds its unit of work from.  None of them opens a transaction:
callers run them inside their own ``transaction.atomic`` block.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Dict, Iterable, Optional
from uuid import UUID

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.products.models import Category, Product


class ICategoryRepository(IRepository["Category"]):
    """Repository contract for product categories."""


class IProductRepository(IRepository["Product"]):
    """Repository contract for the Product aggregate."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Product]:
        """Retrieve a product with a row-level lock (SELECT FOR UPDATE)."""

    @abstractmethod
    def lock_many(self, ids: Iterable[UUID]) -> Dict[UUID, Product]:
        """Lock every existing product in ``ids`` in ascending id order.

        Unknown ids are simply absent from the returned mapping.
        """

    @abstractmethod
    def low_stock(self, threshold: int) -> QuerySet[Product]:
        """Active products holding fewer than ``threshold`` units."""

    @abstractmethod
    def active_in_category(self, category_id: str) -> QuerySet[Product]:
        """Active products filed under ``category_id``."""

    @abstractmethod
    def has_sufficient_stock(self, product: Product, quantity: int) -> bool:
        """Return ``True`` iff ``product.stock_quantity >= quantity``."""

    @abstractmethod
    def decrease_stock(self, product: Product, quantity: int) -> Product:
        """Atomically subtract ``quantity``; raise ``InsufficientStock`` if short."""

    @abstractmethod
    def increase_stock(self, product: Product, quantity: int) -> Product:
        """Atomically add ``quantity`` back."""
