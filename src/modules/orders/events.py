"""Domain events for the Orders bounded context."""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderPlaced(DomainEvent):
    """Raised when an order is placed and its stock reserved."""

    order_number: str = ""
    customer_email: str = ""
    total_amount: str = "0.00"
    item_count: int = 0


@dataclass(frozen=True)
class OrderCancelled(DomainEvent):
    """Raised when an order is cancelled and its stock restored."""

    order_number: str = ""
    previous_status: str = ""
    reason: str = ""


@dataclass(frozen=True)
class OrderStatusChanged(DomainEvent):
    """Raised on an administrative status change."""

    order_number: str = ""
    old_status: str = ""
    new_status: str = ""
