"""Integration tests for the Product API."""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import patch
from uuid import uuid4

import pytest
from django.core.exceptions import ValidationError

from modules.products.models import Category, Product

pytestmark = pytest.mark.integration

URL = "/api/v1/products/"
CATEGORIES_URL = "/api/v1/categories/"


class TestCreate:
    def test_create(self, auth_client):
        response = auth_client.post(
            URL,
            {"name": "Mouse", "price": "249.90", "stock_quantity": 30},
            format="json",
        )
        assert response.status_code == 201
        body = response.json()
        assert body["name"] == "Mouse"
        assert body["price"] == "249.90"
        assert body["is_active"] is True
        assert Product.objects.filter(id=body["id"]).exists()

    @pytest.mark.parametrize(
        "payload",
        [
            {"name": "", "price": "1.00"},
            {"name": "Mouse", "price": "-1.00"},
            {"name": "Mouse", "price": "1.00", "stock_quantity": -5},
            {"price": "1.00"},
            {"name": "Mouse", "price": "1.234"},
            {"name": "Mouse", "price": "123456789012.00"},
            {"name": "x" * 256, "price": "1.00"},
        ],
    )
    def test_invalid_payload(self, auth_client, payload):
        response = auth_client.post(URL, payload, format="json")
        assert response.status_code == 400
        assert not Product.objects.exists()

    def test_model_validation_error_is_400(self, auth_client):
        with patch.object(
            Product, "clean", side_effect=ValidationError({"name": "Name is reserved."})
        ):
            response = auth_client.post(
                URL, {"name": "Mouse", "price": "1.00"}, format="json"
            )
        assert response.status_code == 400
        assert response.json()["detail"] == {"name": ["Name is reserved."]}
        assert not Product.objects.exists()

    def test_unknown_category_is_400(self, auth_client):
        response = auth_client.post(
            URL,
            {"name": "Mouse", "price": "1.00", "category_id": str(uuid4())},
            format="json",
        )
        assert response.status_code == 400

    def test_requires_authentication(self, api_client):
        response = api_client.post(URL, {"name": "X", "price": "1.00"}, format="json")
        assert response.status_code == 401


class TestReadAndUpdate:
    def test_retrieve(self, auth_client, make_product):
        product = make_product(name="Headset")
        response = auth_client.get(f"{URL}{product.id}/")
        assert response.status_code == 200
        assert response.json()["name"] == "Headset"

    def test_retrieve_unknown(self, auth_client):
        assert auth_client.get(f"{URL}{uuid4()}/").status_code == 404

    def test_partial_update(self, auth_client, make_product):
        product = make_product(price="10.00")
        response = auth_client.patch(
            f"{URL}{product.id}/", {"price": "12.50"}, format="json"
        )
        assert response.status_code == 200
        assert Product.objects.get(id=product.id).price == Decimal("12.50")

    @pytest.mark.parametrize("price", ["1.234", "123456789012.00"])
    def test_partial_update_out_of_range_price(self, auth_client, make_product, price):
        product = make_product(price="10.00")
        response = auth_client.patch(
            f"{URL}{product.id}/", {"price": price}, format="json"
        )
        assert response.status_code == 400
        assert Product.objects.get(id=product.id).price == Decimal("10.00")

    def test_set_stock(self, auth_client, make_product):
        product = make_product(stock=3)
        response = auth_client.patch(
            f"{URL}{product.id}/stock/", {"stock_quantity": 40}, format="json"
        )
        assert response.status_code == 200
        assert response.json()["stock_quantity"] == 40

    def test_set_negative_stock_rejected(self, auth_client, make_product):
        product = make_product(stock=3)
        response = auth_client.patch(
            f"{URL}{product.id}/stock/", {"stock_quantity": -1}, format="json"
        )
        assert response.status_code == 400
        assert Product.objects.get(id=product.id).stock_quantity == 3

    def test_delete_deactivates(self, auth_client, make_product):
        product = make_product()
        response = auth_client.delete(f"{URL}{product.id}/")
        assert response.status_code == 204
        assert Product.objects.get(id=product.id).is_active is False


class TestFilters:
    def test_in_stock_and_price_range(self, auth_client, make_product):
        make_product(name="Cheap", price="5.00", stock=0)
        kept = make_product(name="Mid", price="50.00", stock=2)
        make_product(name="Pricey", price="500.00", stock=2)

        response = auth_client.get(
            URL, {"in_stock": "true", "min_price": "10", "max_price": "100"}
        )

        assert [p["id"] for p in response.json()["results"]] == [str(kept.id)]

    def test_name_search(self, auth_client, make_product):
        make_product(name="Wireless Mouse")
        make_product(name="Keyboard")
        response = auth_client.get(URL, {"name": "mouse"})
        assert [p["name"] for p in response.json()["results"]] == ["Wireless Mouse"]

    def test_category_filter(self, auth_client, make_product):
        office = Category.objects.create(name="Office")
        make_product(name="Chair", category=office)
        make_product(name="Mouse")
        response = auth_client.get(URL, {"category": str(office.id)})
        body = response.json()["results"]
        assert [p["name"] for p in body] == ["Chair"]
        assert body[0]["category_name"] == "Office"


class TestLowStock:
    def test_default_threshold(self, auth_client, make_product):
        make_product(name="Cable", stock=9)
        make_product(name="Dock", stock=10)
        make_product(name="Retired", stock=0, is_active=False)

        response = auth_client.get(f"{URL}low-stock/")

        assert response.status_code == 200
        assert [p["name"] for p in response.json()["results"]] == ["Cable"]

    def test_explicit_threshold(self, auth_client, make_product):
        make_product(name="Cable", stock=9)
        make_product(name="Hub", stock=2)
        response = auth_client.get(f"{URL}low-stock/", {"threshold": 5})
        assert [p["name"] for p in response.json()["results"]] == ["Hub"]

    @pytest.mark.parametrize("threshold", ["abc", "-1"])
    def test_invalid_threshold(self, auth_client, threshold):
        response = auth_client.get(f"{URL}low-stock/", {"threshold": threshold})
        assert response.status_code == 400


class TestCategories:
    def test_create_and_list(self, auth_client):
        response = auth_client.post(
            CATEGORIES_URL, {"name": "Office", "description": "Desks"}, format="json"
        )
        assert response.status_code == 201
        assert response.json()["name"] == "Office"

        listing = auth_client.get(CATEGORIES_URL).json()["results"]
        assert [c["name"] for c in listing] == ["Office"]

    def test_duplicate_name_is_400(self, auth_client):
        Category.objects.create(name="Office")
        response = auth_client.post(CATEGORIES_URL, {"name": "Office"}, format="json")
        assert response.status_code == 400
        assert Category.objects.count() == 1

    def test_retrieve_unknown(self, auth_client):
        assert auth_client.get(f"{CATEGORIES_URL}{uuid4()}/").status_code == 404

    def test_products_in_category(self, auth_client, make_product):
        office = Category.objects.create(name="Office")
        make_product(name="Chair", category=office)
        make_product(name="Old Chair", category=office, is_active=False)
        make_product(name="Mouse")

        response = auth_client.get(f"{URL}category/{office.id}/")

        assert response.status_code == 200
        assert [p["name"] for p in response.json()["results"]] == ["Chair"]

    def test_products_in_unknown_category(self, auth_client):
        response = auth_client.get(f"{URL}category/{uuid4()}/")
        assert response.status_code == 404
