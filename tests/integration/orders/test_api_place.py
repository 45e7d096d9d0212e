"""Integration tests for POST /api/v1/orders/."""

from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import pytest

from modules.core.models import OutboxEvent
from modules.orders.models import Order
from modules.products.models import Product

pytestmark = pytest.mark.integration

URL = "/api/v1/orders/"


def _payload(*lines, **overrides):
    data = {
        "customer_name": "Ana Souza",
        "customer_email": "ana@example.com",
        "shipping_address": "Rua das Flores 120, Sao Paulo",
        "items": [{"product_id": str(pid), "quantity": qty} for pid, qty in lines],
    }
    data.update(overrides)
    return data


@pytest.fixture()
def notebook(make_product):
    return make_product(name="Notebook Pro 14", price="35900.00", stock=50)


@pytest.fixture()
def monitor(make_product):
    return make_product(name="4K Monitor 27", price="7990.00", stock=5)


class TestPlaceOrderSuccess:
    def test_returns_201_with_order_body(self, auth_client, notebook):
        response = auth_client.post(URL, _payload((notebook.id, 2)), format="json")

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "PENDING"
        assert body["order_number"].startswith("ORD-")
        assert Decimal(body["total_amount"]) == Decimal("71800.00")
        assert body["customer_email"] == "ana@example.com"
        assert body["items"] == [
            {
                "product_id": str(notebook.id),
                "product_name": "Notebook Pro 14",
                "quantity": 2,
                "unit_price": "35900.00",
                "subtotal": "71800.00",
            }
        ]
        assert Product.objects.get(id=notebook.id).stock_quantity == 48

    def test_multi_line_total(self, auth_client, notebook, monitor):
        response = auth_client.post(
            URL, _payload((notebook.id, 2), (monitor.id, 2)), format="json"
        )
        assert response.status_code == 201
        assert Decimal(response.json()["total_amount"]) == Decimal("87780.00")
        assert [i["product_name"] for i in response.json()["items"]] == [
            "Notebook Pro 14",
            "4K Monitor 27",
        ]

    def test_writes_outbox_event(self, auth_client, notebook):
        response = auth_client.post(URL, _payload((notebook.id, 1)), format="json")
        event = OutboxEvent.objects.get(event_type="OrderPlaced")
        assert event.aggregate_id == response.json()["id"]


class TestPlaceOrderRejected:
    def test_insufficient_stock_is_409_and_changes_nothing(
        self, auth_client, notebook, monitor
    ):
        response = auth_client.post(
            URL, _payload((notebook.id, 1), (monitor.id, 6)), format="json"
        )

        assert response.status_code == 409
        body = response.json()
        assert body["product_id"] == str(monitor.id)
        assert body["requested"] == 6
        assert body["available"] == 5
        assert "Insufficient stock" in body["detail"]
        assert Product.objects.get(id=notebook.id).stock_quantity == 50
        assert Order.objects.count() == 0
        assert OutboxEvent.objects.count() == 0

    def test_unknown_product_is_404(self, auth_client, notebook):
        missing = uuid4()
        response = auth_client.post(
            URL, _payload((notebook.id, 1), (missing, 1)), format="json"
        )
        assert response.status_code == 404
        assert response.json()["product_id"] == str(missing)
        assert Product.objects.get(id=notebook.id).stock_quantity == 50

    @pytest.mark.parametrize(
        "overrides",
        [
            {"items": []},
            {"customer_email": "not-an-email"},
            {"customer_email": "not an email@x"},
            {"customer_name": ""},
            {"shipping_address": ""},
        ],
    )
    def test_invalid_payload_is_400(self, auth_client, notebook, overrides):
        response = auth_client.post(
            URL, _payload((notebook.id, 1), **overrides), format="json"
        )
        assert response.status_code == 400
        assert Order.objects.count() == 0

    @pytest.mark.parametrize("quantity", [0, -3])
    def test_non_positive_quantity_is_400(self, auth_client, notebook, quantity):
        response = auth_client.post(URL, _payload((notebook.id, quantity)), format="json")
        assert response.status_code == 400

    def test_whitespace_only_name_is_400(self, auth_client, notebook):
        response = auth_client.post(
            URL, _payload((notebook.id, 1), customer_name="   "), format="json"
        )
        assert response.status_code == 400

    def test_requires_authentication(self, api_client, notebook):
        response = api_client.post(URL, _payload((notebook.id, 1)), format="json")
        assert response.status_code == 401
