from __future__ import annotations

import random
from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.utils import timezone

from modules.orders.constants import OrderStatus
from modules.orders.dtos import PlaceOrderDTO, PlaceOrderItemDTO
from modules.orders.exceptions import InvalidOrderStatus
from modules.orders.models import Order
from modules.orders.services import build_order_service
from modules.products.exceptions import InsufficientStock
from modules.products.models import Category, Product

CATEGORIES = {
    "Computers": "Laptops and displays",
    "Peripherals": "Input devices, docks and audio",
    "Furniture": "Desks and seating",
}

CATALOG = [
    ("Notebook Pro 14", "14-inch laptop, 16 GB RAM", Decimal("35900.00"), "Computers"),
    ("4K Monitor 27", "27-inch IPS panel", Decimal("7990.00"), "Computers"),
    ("Mechanical Keyboard", "Hot-swappable switches", Decimal("899.90"), "Peripherals"),
    ("Wireless Mouse", "Ergonomic, 2.4 GHz", Decimal("249.90"), "Peripherals"),
    ("USB-C Dock", "Dual display, 100 W PD", Decimal("1299.00"), "Peripherals"),
    ("Noise-Cancelling Headset", "Over-ear, Bluetooth", Decimal("1899.00"), "Peripherals"),
    ("Office Chair", "Adjustable lumbar support", Decimal("2499.00"), "Furniture"),
    ("Standing Desk", "Electric, 140 x 70 cm", Decimal("4299.00"), "Furniture"),
]

CUSTOMERS = [
    ("Ana Souza", "ana@example.com", "Rua das Flores 120, Sao Paulo"),
    ("Bruno Lima", "bruno@example.com", "Av. Atlantica 455, Rio de Janeiro"),
    ("Carla Mendes", "carla@example.com", "Rua XV de Novembro 80, Curitiba"),
    ("Daniel Costa", "daniel@example.com", "Av. Afonso Pena 1500, Belo Horizonte"),
]


class Command(BaseCommand):
    help = "Seed the database with a catalog and orders placed through the order service."

    def add_arguments(self, parser):
        parser.add_argument("--orders", type=int, default=20)

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        users_created = self._seed_users()
        products = self._seed_products()
        orders_created = self._seed_orders(products, options["orders"])

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"users={users_created}, "
                f"products={len(products)}, "
                f"orders={orders_created}"
            )
        )

    def _seed_users(self) -> int:
        User = get_user_model()
        if User.objects.filter(username="admin").exists():
            return 0
        User.objects.create_superuser("admin", password="admin123")
        return 1

    def _seed_products(self) -> list[Product]:
        categories = {
            name: Category.objects.get_or_create(name=name, defaults={"description": text})[0]
            for name, text in CATEGORIES.items()
        }
        products: list[Product] = []
        for name, description, price, category in CATALOG:
            product, _ = Product.objects.get_or_create(
                name=name,
                defaults={
                    "description": description,
                    "price": price,
                    "category": categories[category],
                    "stock_quantity": random.randint(20, 200),
                },
            )
            products.append(product)
        return products

    def _seed_orders(self, products: list[Product], count: int) -> int:
        """Place ``count`` orders, then move some along the lifecycle.

        Going through ``OrderService`` keeps the seeded stock consistent
        with the seeded orders.
        """
        service = build_order_service()
        placed = 0
        for _ in range(count):
            name, email, address = random.choice(CUSTOMERS)
            lines = random.sample(products, k=random.randint(1, 3))
            dto = PlaceOrderDTO(
                customer_name=name,
                customer_email=email,
                shipping_address=address,
                items=[
                    PlaceOrderItemDTO(product_id=p.id, quantity=random.randint(1, 3))
                    for p in lines
                ],
            )
            try:
                order = service.place_order(dto)
            except InsufficientStock as exc:
                self.stdout.write(self.style.WARNING(f"Skipped order: {exc}"))
                continue
            placed += 1

            age = timedelta(hours=random.randint(0, 72))
            Order.objects.filter(id=order.id).update(created_at=timezone.now() - age)

            outcome = random.choice(["pending", "paid", "shipped", "cancelled"])
            try:
                if outcome == "paid":
                    service.update_status(order.id, OrderStatus.PAID)
                elif outcome == "shipped":
                    service.update_status(order.id, OrderStatus.SHIPPED)
                elif outcome == "cancelled":
                    service.cancel_order(order.id, reason="Seeded cancellation")
            except InvalidOrderStatus as exc:
                self.stdout.write(self.style.WARNING(str(exc)))
        return placed
