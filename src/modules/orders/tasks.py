"""Celery tasks for the orders module."""

import structlog
from celery import shared_task

from modules.orders.services import build_order_service

logger = structlog.get_logger(__name__)


@shared_task(name="orders.sweep_unpaid_orders")
def sweep_unpaid_orders(hours=None):
    """Periodic reaper: cancel orders left unpaid past the timeout."""
    cancelled = build_order_service().sweep_unpaid_orders(hours)
    logger.info("orders.sweep_task_finished", cancelled=cancelled)
    return {"cancelled": cancelled}
