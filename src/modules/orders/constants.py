"""Order lifecycle constants.

``PENDING -> PAID -> PROCESSING -> SHIPPED -> DELIVERED -> COMPLETED``, with
``CANCELLED`` reachable through the guarded cancel transition.
"""

from django.db import models


class OrderStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    PAID = "PAID", "Paid"
    PROCESSING = "PROCESSING", "Processing"
    SHIPPED = "SHIPPED", "Shipped"
    DELIVERED = "DELIVERED", "Delivered"
    COMPLETED = "COMPLETED", "Completed"
    CANCELLED = "CANCELLED", "Cancelled"


# Statuses from which cancellation is refused.
FULFILLED_STATES: frozenset[str] = frozenset(
    {OrderStatus.SHIPPED, OrderStatus.DELIVERED, OrderStatus.COMPLETED}
)

TERMINAL_STATES: frozenset[str] = frozenset(
    {OrderStatus.COMPLETED, OrderStatus.CANCELLED}
)

ORDER_NUMBER_PREFIX = "ORD"
ORDER_NUMBER_SUFFIX_LENGTH = 8
ORDER_NUMBER_MAX_RETRIES = 5
