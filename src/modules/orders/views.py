"""Order API views.

Exposes ``OrderService`` over HTTP.  Domain exceptions are caught and
translated into status codes; anything else propagates to DRF.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.core.pagination import StandardResultsSetPagination
from modules.orders.dtos import PlaceOrderDTO, PlaceOrderItemDTO
from modules.orders.exceptions import InvalidOrderStatus, OrderNotFound
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.serializers import (
    CancelOrderSerializer,
    OrderListSerializer,
    OrderSerializer,
    PlaceOrderSerializer,
    StatusUpdateSerializer,
)
from modules.orders.services import CUSTOMER_PAGE_SIZE, build_order_service
from modules.products.exceptions import InsufficientStock, ProductNotFound

MAX_CUSTOMER_PAGE_SIZE = 100


def _order_not_found() -> Response:
    return Response({"detail": "Order not found."}, status=status.HTTP_404_NOT_FOUND)


def _invalid_status(exc: InvalidOrderStatus) -> Response:
    return Response(
        {
            "detail": str(exc),
            "current_status": exc.current_status,
            "operation": exc.operation,
        },
        status=status.HTTP_400_BAD_REQUEST,
    )


class OrderViewSet(GenericViewSet):
    """Order placement, look-up, status changes and cancellation.

    Does **not** extend ``ModelViewSet``: every write goes through
    ``OrderService`` so stock and order state change together.
    """

    queryset = Order.objects.all()
    filterset_class = OrderFilter
    search_fields = ["order_number", "customer_name", "customer_email"]
    ordering_fields = ["created_at", "total_amount", "status"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]
    pagination_class = StandardResultsSetPagination

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_order_service()

    def get_queryset(self):
        return self._service.list_orders()

    # ------------------------------------------------------------------
    # Place
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/"""
        serializer = PlaceOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            dto = PlaceOrderDTO(
                customer_name=data["customer_name"],
                customer_email=data["customer_email"],
                shipping_address=data["shipping_address"],
                items=[
                    PlaceOrderItemDTO(product_id=item["product_id"], quantity=item["quantity"])
                    for item in data["items"]
                ],
            )
        except PydanticValidationError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        try:
            order = self._service.place_order(dto)
        except ProductNotFound as exc:
            return Response(
                {"detail": str(exc), "product_id": str(exc.product_id)},
                status=status.HTTP_404_NOT_FOUND,
            )
        except InsufficientStock as exc:
            return Response(
                {
                    "detail": str(exc),
                    "product_id": str(exc.product_id),
                    "requested": exc.requested,
                    "available": exc.available,
                },
                status=status.HTTP_409_CONFLICT,
            )

        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/  (filterable, orderable, paginated)"""
        queryset = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(queryset)
        serializer = OrderListSerializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/"""
        try:
            order = self._service.get_order(pk)
        except OrderNotFound:
            return _order_not_found()
        return Response(OrderSerializer(order).data)

    @action(detail=False, methods=["get"], url_path=r"number/(?P<order_number>[^/]+)")
    def by_number(self, request: Request, order_number: str | None = None) -> Response:
        """GET /api/v1/orders/number/{order_number}/"""
        try:
            order = self._service.get_order_by_number(order_number)
        except OrderNotFound:
            return _order_not_found()
        return Response(OrderSerializer(order).data)

    @action(detail=False, methods=["get"], url_path="customer")
    def by_customer(self, request: Request) -> Response:
        """GET /api/v1/orders/customer/?email=&page=&page_size="""
        email = request.query_params.get("email", "").strip()
        if not email:
            return Response(
                {"detail": "Query parameter 'email' is required."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        try:
            page_size = int(request.query_params.get("page_size", CUSTOMER_PAGE_SIZE))
        except ValueError:
            page_size = CUSTOMER_PAGE_SIZE
        page_size = max(1, min(page_size, MAX_CUSTOMER_PAGE_SIZE))

        page = self._service.get_orders_by_customer(
            email, page=request.query_params.get("page", 1), page_size=page_size
        )
        return Response(
            {
                "count": page.paginator.count,
                "page": page.number,
                "num_pages": page.paginator.num_pages,
                "results": OrderSerializer(page.object_list, many=True).data,
            }
        )

    # ------------------------------------------------------------------
    # Status update
    # ------------------------------------------------------------------

    @action(detail=True, methods=["patch"], url_path="status")
    def update_status(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/orders/{pk}/status/

        Target status comes from the body or the ``status`` query parameter.
        ``CANCELLED`` is refused; use ``POST /orders/{pk}/cancel/``.
        """
        payload = request.data or {"status": request.query_params.get("status")}
        serializer = StatusUpdateSerializer(data=payload)
        serializer.is_valid(raise_exception=True)

        try:
            order = self._service.update_status(pk, serializer.validated_data["status"])
        except OrderNotFound:
            return _order_not_found()
        except InvalidOrderStatus as exc:
            return _invalid_status(exc)
        return Response(OrderSerializer(order).data)

    # ------------------------------------------------------------------
    # Cancel
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"])
    def cancel(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/cancel/

        Cancels the order and restores stock for every line.
        """
        serializer = CancelOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            order = self._service.cancel_order(
                pk, reason=serializer.validated_data["reason"]
            )
        except OrderNotFound:
            return _order_not_found()
        except InvalidOrderStatus as exc:
            return _invalid_status(exc)
        return Response(OrderSerializer(order).data)
