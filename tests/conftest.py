from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from rest_framework.test import APIClient

from modules.orders.dtos import PlaceOrderDTO, PlaceOrderItemDTO
from modules.orders.services import build_order_service
from modules.products.models import Product


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture(autouse=True)
def _clear_cache():
    """Reset throttle counters between tests."""
    cache.clear()


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def auth_client():
    """APIClient with a force-authenticated Django user."""
    client = APIClient()
    user = get_user_model().objects.create_user(
        username="storefront-tester", password="testpass123"
    )
    client.force_authenticate(user=user)
    return client


@pytest.fixture()
def make_product():
    """Factory persisting a Product with sensible defaults."""

    def _make(name="Widget", price="10.00", stock=10, **extra):
        return Product.objects.create(
            name=name, price=Decimal(price), stock_quantity=stock, **extra
        )

    return _make


@pytest.fixture()
def order_service():
    return build_order_service()


@pytest.fixture()
def place_order(order_service):
    """Place an order for ``[(product, quantity), ...]`` through the service."""

    def _place(lines, email="ana@example.com"):
        dto = PlaceOrderDTO(
            customer_name="Ana Souza",
            customer_email=email,
            shipping_address="Rua das Flores 120, Sao Paulo",
            items=[
                PlaceOrderItemDTO(product_id=product.id, quantity=quantity)
                for product, quantity in lines
            ],
        )
        return order_service.place_order(dto)

    return _place
