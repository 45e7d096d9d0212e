"""Django ORM implementation of the Order repository.

Writes never open their own transaction: the service's
``transaction.atomic`` block is the unit of work, so the order row, its
items, the stock changes and the outbox rows commit or roll back together.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db.models import QuerySet

from modules.core.models import OutboxEvent
from modules.orders.constants import OrderStatus
from modules.orders.models import Order
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)

OUTBOX_TOPIC = "orders"


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def create(self, order: Order) -> Order:
        """Insert ``order`` followed by its pending items in position order."""
        items = order.pending_items
        order.save()
        for item in items:
            item.order = order
            item.save()
        items.clear()

        event_count = self._record_events(order)
        logger.info(
            "order.persisted",
            order_id=str(order.id),
            item_count=order.items.count(),
            event_count=event_count,
        )
        return order

    def save(self, entity: Order, update_fields: Optional[List[str]] = None) -> Order:
        """Persist field changes on an existing order."""
        entity.save(update_fields=update_fields)
        event_count = self._record_events(entity)
        logger.info("order.saved", order_id=str(entity.id), event_count=event_count)
        return entity

    def _record_events(self, order: Order) -> int:
        events = order.domain_events
        for event in events:
            OutboxEvent.record(event, OUTBOX_TOPIC)
        order.clear_domain_events()
        return len(events)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def _base_queryset(self) -> QuerySet[Order]:
        return Order.objects.prefetch_related("items")

    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with its items prefetched.

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return self._base_queryset().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Order]:
        try:
            return self._base_queryset().select_for_update().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_by_number(self, order_number: str) -> Optional[Order]:
        return self._base_queryset().filter(order_number=order_number).first()

    def list(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet[Order]:
        """List orders, newest first, with optional ORM look-ups.

        Examples of valid filters::

            {"status": "PENDING"}
            {"customer_email__iexact": "ana@example.com"}
        """
        queryset = self._base_queryset()
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    def list_by_customer(self, email: str) -> QuerySet[Order]:
        return self._base_queryset().filter(customer_email__iexact=email).order_by(
            "-created_at", "-id"
        )

    def stale_pending_ids(self, created_before: datetime) -> List[UUID]:
        return list(
            Order.objects.filter(
                status=OrderStatus.PENDING, created_at__lt=created_before
            )
            .order_by("created_at")
            .values_list("id", flat=True)
        )
