"""Outbox relay: hands persisted domain events to the in-process bus.

Rows are claimed with ``select_for_update(skip_locked=True)`` so two relay
workers never deliver the same event twice.  Each batch runs in its own
transaction; a handler failure marks only that event as ``FAILED`` and the
relay carries on with the rest of the batch.
"""

from __future__ import annotations

import structlog
from django.db import transaction

from modules.core.models import OUTBOX_MAX_RETRIES, OutboxEvent
from shared.domain.bus import IEventBus

logger = structlog.get_logger(__name__)

OUTBOX_BATCH_SIZE = 100

__all__ = ["OUTBOX_BATCH_SIZE", "OUTBOX_MAX_RETRIES", "publish_pending_events"]


@transaction.atomic
def publish_pending_events(bus: IEventBus, batch_size: int = OUTBOX_BATCH_SIZE) -> int:
    """Publish up to ``batch_size`` deliverable events; return how many succeeded."""
    claimed = OutboxEvent.objects.claim(batch_size)

    published = 0
    for outbox_event in claimed:
        log = logger.bind(
            outbox_event_id=str(outbox_event.id),
            event_type=outbox_event.event_type,
            aggregate_id=outbox_event.aggregate_id,
        )
        try:
            delivered = bus.publish(outbox_event.to_domain_event())
        except Exception as exc:
            outbox_event.mark_as_failed(str(exc))
            log.error(
                "outbox.publish_failed",
                error=str(exc),
                retry_count=outbox_event.retry_count,
                exhausted=outbox_event.retries_exhausted,
            )
            continue
        if not delivered:
            log.info("outbox.no_subscribers")
        outbox_event.mark_as_published()
        published += 1

    if claimed:
        logger.info("outbox.batch_published", published=published, claimed=len(claimed))
    return published
