"""Order repository interface.

Extends ``IRepository[Order]`` with what the Order aggregate needs:
creation together with its items, locked reads for state changes,
look-ups by order number and customer, and the reaper's stale-order
query.  ``create`` and ``save`` also record the aggregate's pending
domain events in the transactional outbox.
"""

from __future__ import annotations

from abc import abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional
from uuid import UUID

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.orders.models import Order


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root."""

    @abstractmethod
    def create(self, order: Order) -> Order:
        """Insert a new order and the items attached with ``add_item``."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order (items prefetched) holding its row lock."""

    @abstractmethod
    def get_by_number(self, order_number: str) -> Optional[Order]:
        """Retrieve an order by its human-readable number."""

    @abstractmethod
    def list_by_customer(self, email: str) -> QuerySet[Order]:
        """Orders placed with ``email`` (case-insensitive), newest first."""

    @abstractmethod
    def stale_pending_ids(self, created_before: datetime) -> List[UUID]:
        """Ids of PENDING orders created strictly before ``created_before``."""
