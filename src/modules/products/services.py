"""Product service layer (catalog management).

Persistence goes through the injected ``IProductRepository``.  Stock is
normally moved by the order engine; every administrative write here takes
the product's row lock first and saves only the columns it changed, so it
serialises with placements and cancellations touching the same product
and never writes back a stale stock counter.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

import structlog
from django.conf import settings
from django.db import transaction

from modules.products.exceptions import CategoryNotFound, ProductNotFound
from modules.products.models import Category, Product

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.products.dtos import (
        CreateCategoryDTO,
        CreateProductDTO,
        UpdateProductDTO,
    )
    from modules.products.repositories.interfaces import (
        ICategoryRepository,
        IProductRepository,
    )

logger = structlog.get_logger(__name__)


class ProductService:
    """Application service for Product use-cases."""

    def __init__(
        self,
        repository: IProductRepository,
        category_repository: Optional[ICategoryRepository] = None,
    ) -> None:
        self._repo = repository
        self._categories = category_repository

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_product(self, dto: CreateProductDTO) -> Product:
        """Raises:
            CategoryNotFound: ``dto.category_id`` names no category.
        """
        category = self._resolve_category(dto.category_id)
        product = Product(
            name=dto.name,
            description=dto.description,
            price=dto.price,
            stock_quantity=dto.stock_quantity,
            is_active=dto.is_active,
            category=category,
        )
        return self._repo.save(product)

    @transaction.atomic
    def update_product(self, id: str, dto: UpdateProductDTO) -> Product:
        """Apply the supplied fields to an existing product.

        Raises:
            ProductNotFound: if the product does not exist.
            CategoryNotFound: ``dto.category_id`` names no category.
        """
        changes = dto.changes()
        product = self._repo.get_for_update(id)
        if not product:
            raise ProductNotFound(id)

        log = logger.bind(product_id=str(product.id))
        if "stock_quantity" in changes:
            log.info(
                "product.stock_set",
                old_stock=product.stock_quantity,
                new_stock=changes["stock_quantity"],
            )

        if "category_id" in changes:
            product.category = self._resolve_category(changes.pop("category_id"))
            changes["category"] = product.category
        for field, value in changes.items():
            setattr(product, field, value)

        if changes:
            product = self._repo.save(product, update_fields=sorted(changes))
        log.info("product.updated", fields=sorted(changes))
        return product

    @transaction.atomic
    def deactivate_product(self, id: str) -> Product:
        """Hide a product from the catalog; existing orders keep referencing it.

        Raises:
            ProductNotFound: if the product does not exist.
        """
        product = self._repo.get_for_update(id)
        if not product:
            raise ProductNotFound(id)
        product.is_active = False
        product = self._repo.save(product, update_fields=["is_active"])
        logger.info("product.deactivated", product_id=str(id))
        return product

    @transaction.atomic
    def create_category(self, dto: CreateCategoryDTO) -> Category:
        category = Category(name=dto.name, description=dto.description)
        category = self._category_repo().save(category)
        logger.info("category.created", category_id=str(category.id), name=category.name)
        return category

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_products(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet[Product]:
        return self._repo.list(filters)

    def get_product(self, id: str) -> Product:
        """Retrieve a single product by ID.

        Raises:
            ProductNotFound: if the product does not exist.
        """
        product = self._repo.get_by_id(id)
        if not product:
            raise ProductNotFound(id)
        return product

    def list_low_stock(self, threshold: Optional[int] = None) -> QuerySet[Product]:
        """Active products with fewer than ``threshold`` units, scarcest first."""
        if threshold is None:
            threshold = settings.PRODUCT_LOW_STOCK_THRESHOLD
        if threshold < 0:
            raise ValueError("threshold must be zero or greater.")
        return self._repo.low_stock(threshold)

    def list_by_category(self, category_id: str) -> QuerySet[Product]:
        """Active products in a category.

        Raises:
            CategoryNotFound: if the category does not exist.
        """
        self._resolve_category(category_id)
        return self._repo.active_in_category(category_id)

    def list_categories(self) -> QuerySet[Category]:
        return self._category_repo().list()

    def get_category(self, id: str) -> Category:
        category = self._category_repo().get_by_id(id)
        if not category:
            raise CategoryNotFound(id)
        return category

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _category_repo(self) -> ICategoryRepository:
        if self._categories is None:
            raise RuntimeError("ProductService was built without a category repository.")
        return self._categories

    def _resolve_category(self, category_id: Any) -> Optional[Category]:
        if category_id is None:
            return None
        category = self._category_repo().get_by_id(str(category_id))
        if not category:
            raise CategoryNotFound(category_id)
        return category
