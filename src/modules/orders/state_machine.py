"""Order lifecycle transitions.

Two entry points with different contracts:

- ``set_status``: unguarded administrative set, total over ``OrderStatus``.
- ``cancel``: guarded; refuses fulfilled or already-cancelled orders.

Both only mutate the in-memory ``Order``; persisting the change, emitting
events and restoring stock belong to ``OrderService``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from modules.orders.constants import FULFILLED_STATES, OrderStatus
from modules.orders.exceptions import InvalidOrderStatus

if TYPE_CHECKING:
    from modules.orders.models import Order


def parse_status(value: str, current_status: str = "") -> OrderStatus:
    """Coerce ``value`` (case-insensitive) to an ``OrderStatus``."""
    try:
        return OrderStatus(str(value).strip().upper())
    except ValueError:
        raise InvalidOrderStatus(
            current_status,
            "set status",
            reason=f"Unknown order status {value!r}.",
        ) from None


def can_cancel(order: Order) -> bool:
    return order.status not in FULFILLED_STATES and order.status != OrderStatus.CANCELLED


def set_status(order: Order, new_status: str) -> str:
    """Move ``order`` to ``new_status`` and return the previous status.

    Any enum member is accepted from any state, including moving out of
    ``CANCELLED`` or ``COMPLETED``.
    """
    target = parse_status(new_status, order.status)
    previous = order.status
    order.status = target
    return previous


def cancel(order: Order) -> str:
    """Guarded transition to ``CANCELLED``; returns the previous status.

    Raises:
        InvalidOrderStatus: order is shipped, delivered, completed or
            already cancelled.
    """
    if order.status in FULFILLED_STATES:
        raise InvalidOrderStatus(
            order.status,
            "cancel",
            reason=f"Order already fulfilled ({order.status}), cannot cancel.",
        )
    if order.status == OrderStatus.CANCELLED:
        raise InvalidOrderStatus(order.status, "cancel", reason="Order already cancelled.")
    previous = order.status
    order.status = OrderStatus.CANCELLED
    return previous
