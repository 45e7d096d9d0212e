"""Product API views.

Exposes ``ProductService`` over HTTP.  Domain exceptions are caught and
translated into status codes; anything else propagates to DRF.
"""

from __future__ import annotations

from django.core.exceptions import ValidationError as DjangoValidationError
from django_filters.rest_framework import DjangoFilterBackend
from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.mixins import ListModelMixin
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.products.dtos import CreateCategoryDTO, CreateProductDTO, UpdateProductDTO
from modules.products.exceptions import CategoryNotFound, ProductNotFound
from modules.products.filters import ProductFilter
from modules.products.models import Category, Product
from modules.products.repositories.django_repository import (
    CategoryDjangoRepository,
    ProductDjangoRepository,
)
from modules.products.serializers import (
    CategorySerializer,
    ProductSerializer,
    StockUpdateSerializer,
)
from modules.products.services import ProductService

UPDATABLE_FIELDS = (
    "name",
    "price",
    "description",
    "stock_quantity",
    "is_active",
    "category_id",
)


def _not_found(what: str = "Product") -> Response:
    return Response({"detail": f"{what} not found."}, status=status.HTTP_404_NOT_FOUND)


def _bad_request(exc: Exception) -> Response:
    if isinstance(exc, DjangoValidationError):
        detail = exc.message_dict if hasattr(exc, "error_dict") else exc.messages
        return Response({"detail": detail}, status=status.HTTP_400_BAD_REQUEST)
    return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)


def _build_service() -> ProductService:
    return ProductService(
        repository=ProductDjangoRepository(),
        category_repository=CategoryDjangoRepository(),
    )


class ProductViewSet(ListModelMixin, GenericViewSet):
    """Catalog endpoints.

    ``DELETE`` deactivates instead of removing: order items keep a
    protected reference to the product.
    """

    filterset_class = ProductFilter
    search_fields = ["name", "description"]
    ordering_fields = ["name", "price", "stock_quantity", "created_at"]
    ordering = ["name", "id"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]
    queryset = Product.objects.all()
    serializer_class = ProductSerializer

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = _build_service()

    def get_queryset(self):
        return self._service.list_products()

    def _paginated(self, queryset) -> Response:
        page = self.paginate_queryset(queryset)
        serializer = ProductSerializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    # ------------------------------------------------------------------
    # Retrieve
    # ------------------------------------------------------------------

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/products/{pk}/"""
        try:
            product = self._service.get_product(pk)
        except ProductNotFound:
            return _not_found()
        return Response(ProductSerializer(product).data)

    @action(detail=False, methods=["get"], url_path="low-stock")
    def low_stock(self, request: Request) -> Response:
        """GET /api/v1/products/low-stock/?threshold=N

        Active products holding fewer than ``threshold`` units.
        """
        raw = request.query_params.get("threshold")
        try:
            threshold = int(raw) if raw is not None else None
            queryset = self._service.list_low_stock(threshold)
        except ValueError:
            return Response(
                {"detail": "threshold must be a non-negative integer."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        return self._paginated(queryset)

    @action(
        detail=False,
        methods=["get"],
        url_path=r"category/(?P<category_id>[^/.]+)",
    )
    def by_category(self, request: Request, category_id: str | None = None) -> Response:
        """GET /api/v1/products/category/{category_id}/  (active products only)"""
        try:
            queryset = self._service.list_by_category(category_id)
        except CategoryNotFound:
            return _not_found("Category")
        return self._paginated(queryset.order_by("name", "id"))

    # ------------------------------------------------------------------
    # Create / Update / Deactivate
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/products/"""
        try:
            dto = CreateProductDTO(**request.data)
        except (PydanticValidationError, TypeError) as exc:
            return _bad_request(exc)

        try:
            product = self._service.create_product(dto)
        except (CategoryNotFound, DjangoValidationError) as exc:
            return _bad_request(exc)
        return Response(ProductSerializer(product).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/products/{pk}/"""
        fields = {k: request.data[k] for k in UPDATABLE_FIELDS if k in request.data}
        try:
            dto = UpdateProductDTO(**fields)
        except PydanticValidationError as exc:
            return _bad_request(exc)

        try:
            product = self._service.update_product(pk, dto)
        except ProductNotFound:
            return _not_found()
        except (CategoryNotFound, DjangoValidationError) as exc:
            return _bad_request(exc)
        return Response(ProductSerializer(product).data)

    @action(detail=True, methods=["patch"], url_path="stock")
    def update_stock(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/products/{pk}/stock/  ``{"stock_quantity": N}``"""
        serializer = StockUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = UpdateProductDTO(stock_quantity=serializer.validated_data["stock_quantity"])

        try:
            product = self._service.update_product(pk, dto)
        except ProductNotFound:
            return _not_found()
        except DjangoValidationError as exc:
            return _bad_request(exc)
        return Response(ProductSerializer(product).data)

    def destroy(self, request: Request, pk: str | None = None) -> Response:
        """DELETE /api/v1/products/{pk}/"""
        try:
            self._service.deactivate_product(pk)
        except ProductNotFound:
            return _not_found()
        return Response(status=status.HTTP_204_NO_CONTENT)


class CategoryViewSet(ListModelMixin, GenericViewSet):
    """``GET``/``POST /api/v1/categories/`` and ``GET /api/v1/categories/{pk}/``."""

    queryset = Category.objects.all()
    serializer_class = CategorySerializer

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = _build_service()

    def get_queryset(self):
        return self._service.list_categories()

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        try:
            category = self._service.get_category(pk)
        except CategoryNotFound:
            return _not_found("Category")
        return Response(CategorySerializer(category).data)

    def create(self, request: Request) -> Response:
        try:
            dto = CreateCategoryDTO(**request.data)
        except (PydanticValidationError, TypeError) as exc:
            return _bad_request(exc)

        try:
            category = self._service.create_category(dto)
        except DjangoValidationError as exc:
            return _bad_request(exc)
        return Response(CategorySerializer(category).data, status=status.HTTP_201_CREATED)
