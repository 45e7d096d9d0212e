"""Order service layer: placement, cancellation, status changes and expiry.

Every write is one unit of work under ``transaction.atomic``: stock
changes, the order row, its items and the outbox events commit together
or not at all.  Every write path is additionally wrapped in
``retry_on_conflict`` (outside the transaction) so a deadlock or
serialization abort reruns the whole unit of work.

Locking discipline:
- placement locks every requested product up front, ascending by id, then
  processes the lines in request order;
- cancellation locks the order row first, then its products ascending by id;
- the reaper cancels each stale order in its own transaction and holds no
  lock between orders.
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING, Any, Dict, Optional
from uuid import UUID

import structlog
from django.conf import settings
from django.core.paginator import Page, Paginator
from django.db import DatabaseError, transaction
from django.utils import timezone

from modules.core.transactions import retry_on_conflict
from modules.orders import state_machine
from modules.orders.constants import OrderStatus
from modules.orders.events import OrderCancelled, OrderPlaced, OrderStatusChanged
from modules.orders.exceptions import InvalidOrderStatus, OrderNotFound
from modules.orders.models import Order, OrderItem
from modules.products.exceptions import InsufficientStock, ProductNotFound

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.orders.dtos import PlaceOrderDTO
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)

CUSTOMER_PAGE_SIZE = 10


class OrderService:
    """Application service for Order use-cases.

    Receives repositories via constructor injection.
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        product_repository: IProductRepository,
    ) -> None:
        self._order_repo = order_repository
        self._product_repo = product_repository

    # ------------------------------------------------------------------
    # Placement
    # ------------------------------------------------------------------

    @retry_on_conflict()
    @transaction.atomic
    def place_order(self, dto: PlaceOrderDTO) -> Order:
        """Reserve stock for every line and create the order, all or nothing.

        Each line is checked against the stock as already reduced by the
        earlier lines of the same request, so repeating a product across
        lines cannot over-reserve it.

        Raises:
            ProductNotFound: a requested product does not exist.
            InsufficientStock: a line asks for more than is left.
        """
        log = logger.bind(customer_email=dto.customer_email, line_count=len(dto.items))
        log.info("order.placement_started")

        products = self._product_repo.lock_many(line.product_id for line in dto.items)

        order = Order(
            customer_name=dto.customer_name,
            customer_email=dto.customer_email,
            shipping_address=dto.shipping_address,
            status=OrderStatus.PENDING,
        )

        for line in dto.items:
            product = products.get(line.product_id)
            if product is None:
                log.warning("order.product_not_found", product_id=str(line.product_id))
                raise ProductNotFound(line.product_id)
            if not self._product_repo.has_sufficient_stock(product, line.quantity):
                log.warning(
                    "order.insufficient_stock",
                    product_id=str(product.id),
                    requested=line.quantity,
                    available=product.stock_quantity,
                )
                raise InsufficientStock(product.id, line.quantity, product.stock_quantity)

            self._product_repo.decrease_stock(product, line.quantity)
            order.add_item(OrderItem.from_product(product, line.quantity))
            log.info(
                "order.stock_reserved",
                product_id=str(product.id),
                quantity=line.quantity,
                remaining=product.stock_quantity,
            )

        total = order.calculate_total()
        order.ensure_order_number()
        order.add_domain_event(
            OrderPlaced(
                aggregate_id=order.id,
                order_number=order.order_number,
                customer_email=order.customer_email,
                total_amount=str(total),
                item_count=len(dto.items),
            )
        )
        order = self._order_repo.create(order)

        log.info(
            "order.placed",
            order_id=str(order.id),
            order_number=order.order_number,
            total_amount=str(total),
        )
        return self._order_repo.get_by_id(str(order.id)) or order

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    @retry_on_conflict()
    @transaction.atomic
    def cancel_order(
        self,
        order_id: UUID | str,
        reason: str = "",
        expected_status: Optional[str] = None,
    ) -> Order:
        """Cancel an order and give every reserved unit back to stock.

        ``expected_status`` lets the reaper cancel only orders that are
        still in that status once the row lock is held.

        Raises:
            OrderNotFound: order does not exist.
            InvalidOrderStatus: the cancel guard (or ``expected_status``)
                rejects the order; nothing is changed.
        """
        order = self._order_repo.get_for_update(str(order_id))
        if not order:
            raise OrderNotFound(order_id)

        log = logger.bind(order_id=str(order.id), current_status=order.status)

        if expected_status is not None and order.status != expected_status:
            log.info("order.cancel_skipped", expected_status=expected_status)
            raise InvalidOrderStatus(
                order.status,
                "cancel",
                reason=f"Order is {order.status}, expected {expected_status}.",
            )

        try:
            previous_status = state_machine.cancel(order)
        except InvalidOrderStatus:
            log.warning("order.cancel_rejected")
            raise

        items = sorted(order.items.all(), key=lambda item: item.product_id)
        products = self._product_repo.lock_many(item.product_id for item in items)
        for item in items:
            self._product_repo.increase_stock(products[item.product_id], item.quantity)
            log.info(
                "order.stock_released",
                product_id=str(item.product_id),
                quantity=item.quantity,
            )

        order.add_domain_event(
            OrderCancelled(
                aggregate_id=order.id,
                order_number=order.order_number,
                previous_status=previous_status,
                reason=reason,
            )
        )
        self._order_repo.save(order)

        log.info("order.cancelled", previous_status=previous_status, reason=reason)
        return self._order_repo.get_by_id(str(order.id)) or order

    # ------------------------------------------------------------------
    # Administrative status change
    # ------------------------------------------------------------------

    @retry_on_conflict()
    @transaction.atomic
    def update_status(self, order_id: UUID | str, new_status: str) -> Order:
        """Set the order status without lifecycle checks.

        ``CANCELLED`` is refused here: cancellation must go through
        ``cancel_order`` so its guard and the stock restoration apply.

        Raises:
            OrderNotFound: order does not exist.
            InvalidOrderStatus: unknown status value, or ``CANCELLED``.
        """
        order = self._order_repo.get_for_update(str(order_id))
        if not order:
            raise OrderNotFound(order_id)

        target = state_machine.parse_status(new_status, order.status)
        if target == OrderStatus.CANCELLED:
            raise InvalidOrderStatus(
                order.status,
                "set status",
                reason="Use the cancel operation to cancel an order.",
            )

        old_status = state_machine.set_status(order, target)
        order.add_domain_event(
            OrderStatusChanged(
                aggregate_id=order.id,
                order_number=order.order_number,
                old_status=old_status,
                new_status=target.value,
            )
        )
        self._order_repo.save(order)

        logger.info(
            "order.status_updated",
            order_id=str(order.id),
            old_status=old_status,
            new_status=target.value,
        )
        return self._order_repo.get_by_id(str(order.id)) or order

    # ------------------------------------------------------------------
    # Timeout reaper
    # ------------------------------------------------------------------

    def sweep_unpaid_orders(self, hours: Optional[int] = None) -> int:
        """Cancel PENDING orders older than ``hours``; return how many.

        Every order is cancelled in its own transaction, never under one
        spanning the whole sweep.  Per-order failures are logged and
        skipped; a second run finds nothing left to cancel.
        """
        if hours is None:
            hours = settings.ORDER_UNPAID_TIMEOUT_HOURS
        if hours < 0:
            raise ValueError("hours must be zero or greater.")
        cutoff = timezone.now() - timedelta(hours=hours)
        stale_ids = self._order_repo.stale_pending_ids(cutoff)

        log = logger.bind(hours=hours, cutoff=cutoff.isoformat())
        log.info("order.sweep_started", candidates=len(stale_ids))

        cancelled = 0
        for order_id in stale_ids:
            try:
                self.cancel_order(
                    order_id,
                    reason=f"Unpaid for more than {hours} hours",
                    expected_status=OrderStatus.PENDING,
                )
            except (InvalidOrderStatus, OrderNotFound, DatabaseError) as exc:
                log.warning("order.sweep_skipped", order_id=str(order_id), error=str(exc))
                continue
            cancelled += 1

        log.info("order.sweep_completed", cancelled=cancelled, candidates=len(stale_ids))
        return cancelled

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: str) -> Order:
        """Raises ``OrderNotFound`` for unknown or malformed ids."""
        order = self._order_repo.get_by_id(order_id)
        if not order:
            raise OrderNotFound(order_id)
        return order

    def get_order_by_number(self, order_number: str) -> Order:
        order = self._order_repo.get_by_number(order_number)
        if not order:
            raise OrderNotFound(order_number)
        return order

    def get_orders_by_customer(
        self, email: str, page: Any = 1, page_size: int = CUSTOMER_PAGE_SIZE
    ) -> Page:
        """One page of ``email``'s orders, newest first.

        Out-of-range or non-numeric page numbers fall back to the nearest
        valid page (``Paginator.get_page``).
        """
        paginator = Paginator(self._order_repo.list_by_customer(email), page_size)
        return paginator.get_page(page)

    def list_orders(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet[Order]:
        return self._order_repo.list(filters)


def build_order_service() -> OrderService:
    """Wire ``OrderService`` with the Django ORM repositories."""
    from modules.orders.repositories.django_repository import OrderDjangoRepository
    from modules.products.repositories.django_repository import ProductDjangoRepository

    return OrderService(
        order_repository=OrderDjangoRepository(),
        product_repository=ProductDjangoRepository(),
    )
