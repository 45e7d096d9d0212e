"""Periodic and diagnostic Celery tasks for the core module."""

import structlog
from celery import shared_task

from modules.core.outbox import publish_pending_events
from shared.infrastructure.bus import event_bus

logger = structlog.get_logger(__name__)


@shared_task(name="core.publish_outbox_events")
def publish_outbox_events():
    """Drain one batch of the transactional outbox through the event bus."""
    published = publish_pending_events(event_bus)
    logger.info("outbox.relay_completed", published=published)
    return {"published": published}


@shared_task(name="core.debug_task")
def debug_task():
    """Diagnostic task confirming a worker is consuming the queue."""
    logger.info("debug_task.executed", status="ok")
    return {"status": "ok", "message": "Celery is working"}
