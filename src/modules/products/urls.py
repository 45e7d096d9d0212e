"""Catalog routes: ``products/`` (with ``stock/``, ``low-stock/`` and
``category/{id}/`` actions) and ``categories/``."""

from __future__ import annotations

from rest_framework.routers import DefaultRouter

from modules.products.views import CategoryViewSet, ProductViewSet

router = DefaultRouter(trailing_slash=True)
router.register("products", ProductViewSet, basename="product")
router.register("categories", CategoryViewSet, basename="category")

urlpatterns = router.urls
