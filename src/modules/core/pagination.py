"""Shared DRF pagination classes."""

from __future__ import annotations

from rest_framework.pagination import PageNumberPagination


class StandardResultsSetPagination(PageNumberPagination):
    """Page-number pagination with a client-tunable, capped page size.

    ``?page_size=N`` is honoured up to ``max_page_size``; the default comes
    from ``REST_FRAMEWORK["PAGE_SIZE"]``.
    """

    page_size_query_param = "page_size"
    max_page_size = 100
