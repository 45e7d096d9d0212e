"""Order aggregate: ``Order`` root plus its ``OrderItem`` lines.

Rules implemented here:
- ``total_amount`` is the exact ``Decimal`` sum of line subtotals.
- Lines are attached in memory with ``add_item`` before the order is first
  saved; afterwards the set of lines is frozen and persisted lines refuse
  updates.
- Each line snapshots product name and unit price; later catalog changes
  never reach existing orders.
- ``order_number`` is a human-readable identifier (``ORD-YYYYMMDD-XXXXXXXX``)
  generated on first save; the unique index is the final arbiter.
"""

from __future__ import annotations

import secrets
import string
from datetime import timezone as dt_timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Any, List

import structlog
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from modules.core.models import BaseModel
from modules.orders.constants import (
    ORDER_NUMBER_MAX_RETRIES,
    ORDER_NUMBER_PREFIX,
    ORDER_NUMBER_SUFFIX_LENGTH,
    TERMINAL_STATES,
    OrderStatus,
)
from modules.orders.exceptions import OrderItemsFrozen
from shared.domain.events import DomainEventMixin

if TYPE_CHECKING:
    from modules.products.models import Product

logger = structlog.get_logger(__name__)

ORDER_NUMBER_ALPHABET = string.ascii_uppercase + string.digits


class Order(DomainEventMixin, BaseModel):
    """Order aggregate root.

    The UUIDv7 ``id`` is used for internal references and API look-ups;
    ``order_number`` is what customers see.
    """

    order_number: models.CharField = models.CharField(
        max_length=32, unique=True, editable=False
    )
    customer_name: models.CharField = models.CharField(max_length=255)
    customer_email: models.EmailField = models.EmailField(db_index=True)
    shipping_address: models.TextField = models.TextField()
    status: models.CharField = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
    )
    total_amount: models.DecimalField = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
    )

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "created_at"], name="orders_status_created_idx"),
            models.Index(fields=["-created_at"], name="orders_created_idx"),
        ]

    # ------------------------------------------------------------------
    # Line items
    # ------------------------------------------------------------------

    @property
    def pending_items(self) -> List[OrderItem]:
        if not hasattr(self, "_pending_items"):
            self._pending_items: List[OrderItem] = []
        return self._pending_items

    def add_item(self, item: OrderItem) -> OrderItem:
        """Attach ``item`` as the next line of a not-yet-persisted order.

        Raises:
            OrderItemsFrozen: the order already exists in the database.
        """
        if not self._state.adding:
            raise OrderItemsFrozen(
                f"Order {self.order_number or self.id} is persisted; its items are fixed."
            )
        item.order = self
        item.position = len(self.pending_items)
        self.pending_items.append(item)
        return item

    def line_items(self) -> List[OrderItem]:
        """Lines in insertion order, whether persisted or still in memory."""
        if self._state.adding:
            return list(self.pending_items)
        return list(self.items.all())

    def calculate_total(self) -> Decimal:
        """Recompute ``total_amount`` from the line subtotals."""
        total = sum((item.subtotal for item in self.line_items()), Decimal("0.00"))
        self.total_amount = total
        return total

    # ------------------------------------------------------------------
    # Status helpers
    # ------------------------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES

    # ------------------------------------------------------------------
    # Order number generation
    # ------------------------------------------------------------------

    @staticmethod
    def generate_order_number() -> str:
        """Return a candidate ``ORD-YYYYMMDD-XXXXXXXX`` (UTC date)."""
        today = timezone.now().astimezone(dt_timezone.utc)
        suffix = "".join(
            secrets.choice(ORDER_NUMBER_ALPHABET)
            for _ in range(ORDER_NUMBER_SUFFIX_LENGTH)
        )
        return f"{ORDER_NUMBER_PREFIX}-{today:%Y%m%d}-{suffix}"

    def ensure_order_number(self) -> str:
        if not self.order_number:
            for attempt in range(1, ORDER_NUMBER_MAX_RETRIES + 1):
                candidate = self.generate_order_number()
                if not Order.objects.filter(order_number=candidate).exists():
                    self.order_number = candidate
                    break
                logger.warning("order.number_collision", attempt=attempt)
            else:
                raise RuntimeError(
                    f"Failed to generate unique order_number after "
                    f"{ORDER_NUMBER_MAX_RETRIES} attempts"
                )
        return self.order_number

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, *args: Any, **kwargs: Any) -> None:
        self.ensure_order_number()
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.order_number} ({self.status})"


class OrderItem(BaseModel):
    """Line item: product reference plus the price/name snapshot at purchase.

    ``order_id`` is the explicit back-reference; the item is owned by
    exactly one order and never shared.  ``product`` is ``PROTECT`` so the
    referenced product can never be removed underneath an order.
    """

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="items",
    )
    product: models.ForeignKey = models.ForeignKey(
        "products.Product",
        on_delete=models.PROTECT,
        related_name="order_items",
    )
    product_name: models.CharField = models.CharField(max_length=255)
    quantity: models.PositiveIntegerField = models.PositiveIntegerField(
        validators=[MinValueValidator(1)],
    )
    unit_price: models.DecimalField = models.DecimalField(
        max_digits=10,
        decimal_places=2,
    )
    subtotal: models.DecimalField = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        editable=False,
    )
    position: models.PositiveSmallIntegerField = models.PositiveSmallIntegerField(
        default=0
    )

    class Meta:
        db_table = "order_items"
        ordering = ["position"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="order_items_quantity_positive",
            ),
            models.UniqueConstraint(
                fields=["order", "position"],
                name="order_items_order_position_uniq",
            ),
        ]

    @classmethod
    def from_product(cls, product: Product, quantity: int) -> OrderItem:
        """Build a line that snapshots ``product``'s current name and price."""
        return cls(
            product=product,
            product_name=product.name,
            quantity=quantity,
            unit_price=product.price,
            subtotal=product.price * quantity,
        )

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self._state.adding:
            raise OrderItemsFrozen(f"Order item {self.id} cannot be modified.")
        self.subtotal = self.unit_price * self.quantity
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.product_name} x{self.quantity} ({self.subtotal})"
