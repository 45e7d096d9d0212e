"""Tests for the ``seed_data`` management command."""

from io import StringIO

import pytest
from django.contrib.auth import get_user_model
from django.core.management import call_command

from modules.orders.models import Order
from modules.products.models import Category, Product

pytestmark = pytest.mark.unit


def test_seed_creates_catalog_and_orders():
    out = StringIO()
    call_command("seed_data", "--orders", "5", stdout=out)

    assert "Seed completed" in out.getvalue()
    assert get_user_model().objects.filter(username="admin").exists()
    assert Product.objects.count() == 8
    assert Category.objects.count() == 3
    assert not Product.objects.filter(category__isnull=True).exists()
    assert 0 < Order.objects.count() <= 5


def test_seeded_orders_are_consistent():
    call_command("seed_data", "--orders", "10", stdout=StringIO())

    assert not Product.objects.filter(stock_quantity__lt=0).exists()
    for order in Order.objects.prefetch_related("items"):
        assert order.total_amount == sum(item.subtotal for item in order.items.all())


def test_seed_is_rerunnable():
    call_command("seed_data", "--orders", "0", stdout=StringIO())
    call_command("seed_data", "--orders", "0", stdout=StringIO())
    assert Product.objects.count() == 8
    assert Category.objects.count() == 3
    assert get_user_model().objects.filter(username="admin").count() == 1
