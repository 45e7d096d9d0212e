"""Django ORM implementation of the Product repository.

Lookups follow the Null Object convention (``None`` for missing rows);
the stock mutators raise domain exceptions because a failed reservation
must abort the caller's transaction.

Stock is never changed with a read-modify-write on the instance.  The
decrement is a single conditional ``UPDATE ... WHERE stock_quantity >= q``
and the increment a single ``F()`` addition, so the counter stays correct
even where the backend offers no row locks.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import F, QuerySet
from django.utils import timezone

from modules.products.exceptions import InsufficientStock, ProductNotFound
from modules.products.models import Category, Product
from modules.products.repositories.interfaces import (
    ICategoryRepository,
    IProductRepository,
)

logger = structlog.get_logger(__name__)


class CategoryDjangoRepository(ICategoryRepository):
    def get_by_id(self, id: str) -> Optional[Category]:
        try:
            return Category.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet[Category]:
        queryset = Category.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    @transaction.atomic
    def save(self, entity: Category, update_fields: Optional[List[str]] = None) -> Category:
        entity.full_clean()
        entity.save(update_fields=update_fields)
        logger.info("category.saved", category_id=str(entity.id), name=entity.name)
        return entity


class ProductDjangoRepository(IProductRepository):
    """Concrete Product repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Product]:
        """Retrieve a product by primary key.

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return Product.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet[Product]:
        """List products with optional Django ORM look-ups.

        Examples of valid filters::

            {"is_active": True}
            {"name__icontains": "notebook"}
        """
        queryset = Product.objects.select_related("category")
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    def get_for_update(self, id: str) -> Optional[Product]:
        try:
            return Product.objects.select_for_update().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def low_stock(self, threshold: int) -> QuerySet[Product]:
        return Product.objects.filter(
            is_active=True, stock_quantity__lt=threshold
        ).order_by("stock_quantity", "name")

    def active_in_category(self, category_id: str) -> QuerySet[Product]:
        return Product.objects.filter(category_id=category_id, is_active=True)

    def lock_many(self, ids: Iterable[UUID]) -> Dict[UUID, Product]:
        """Lock the given products, always in ascending primary-key order.

        Two transactions locking overlapping product sets acquire the shared
        rows in the same sequence, which rules out lock-order deadlocks.
        """
        unique_ids = sorted(set(ids))
        if not unique_ids:
            return {}
        products = (
            Product.objects.select_for_update().filter(id__in=unique_ids).order_by("id")
        )
        return {product.id: product for product in products}

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    @transaction.atomic
    def save(self, entity: Product, update_fields: Optional[List[str]] = None) -> Product:
        """Persist (create or update) a product.

        With ``update_fields`` only those columns are written, so a stale
        in-memory ``stock_quantity`` cannot overwrite a concurrent reservation.
        """
        entity.full_clean()
        entity.save(update_fields=update_fields)
        logger.info("product.saved", product_id=str(entity.id))
        return entity

    # ------------------------------------------------------------------
    # Stock primitives
    # ------------------------------------------------------------------

    def has_sufficient_stock(self, product: Product, quantity: int) -> bool:
        return product.has_stock(quantity)

    def decrease_stock(self, product: Product, quantity: int) -> Product:
        """Subtract ``quantity`` from the stored counter.

        Raises:
            InsufficientStock: fewer than ``quantity`` units are stored;
                ``available`` is re-read from the database.
            ProductNotFound: the row no longer exists.
        """
        updated = Product.objects.filter(
            id=product.id, stock_quantity__gte=quantity
        ).update(
            stock_quantity=F("stock_quantity") - quantity,
            updated_at=timezone.now(),
        )
        if not updated:
            available = (
                Product.objects.filter(id=product.id)
                .values_list("stock_quantity", flat=True)
                .first()
            )
            if available is None:
                raise ProductNotFound(product.id)
            product.stock_quantity = available
            raise InsufficientStock(product.id, quantity, available)

        product.refresh_from_db(fields=["stock_quantity", "updated_at"])
        logger.info(
            "product.stock_decreased",
            product_id=str(product.id),
            quantity=quantity,
            remaining=product.stock_quantity,
        )
        return product

    def increase_stock(self, product: Product, quantity: int) -> Product:
        Product.objects.filter(id=product.id).update(
            stock_quantity=F("stock_quantity") + quantity,
            updated_at=timezone.now(),
        )
        product.refresh_from_db(fields=["stock_quantity", "updated_at"])
        logger.info(
            "product.stock_increased",
            product_id=str(product.id),
            quantity=quantity,
            restored_stock=product.stock_quantity,
        )
        return product
