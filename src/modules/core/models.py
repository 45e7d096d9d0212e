"""Shared persistence for the storefront modules.

- ``BaseModel``: UUIDv7 primary key, ``created_at`` / ``updated_at``.
- ``OutboxEvent``: domain events written in the same transaction as the
  rows that produced them, delivered later by ``modules.core.outbox``.
"""

from __future__ import annotations

import uuid6
from django.db import models
from django.utils import timezone

from shared.domain.events import DomainEvent

# ---------------------------------------------------------------------------
# BaseModel
# ---------------------------------------------------------------------------


class BaseModel(models.Model):
    """Abstract base with UUIDv7 PK and timestamp bookkeeping."""

    id = models.UUIDField(
        primary_key=True,
        default=uuid6.uuid7,
        editable=False,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True

    def save(self, *args, **kwargs) -> None:
        """Ensure ``updated_at`` is refreshed even when ``update_fields`` is passed."""
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "updated_at" not in update_fields:
            kwargs["update_fields"] = list(update_fields) + ["updated_at"]
        super().save(*args, **kwargs)


# ---------------------------------------------------------------------------
# Transactional Outbox
# ---------------------------------------------------------------------------


class EventStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    PUBLISHED = "PUBLISHED", "Published"
    FAILED = "FAILED", "Failed"


OUTBOX_MAX_RETRIES = 5


class OutboxEventQuerySet(models.QuerySet):
    def deliverable(self, max_retries: int = OUTBOX_MAX_RETRIES) -> OutboxEventQuerySet:
        """PENDING rows, plus FAILED rows that still have retries left."""
        return self.filter(
            models.Q(status=EventStatus.PENDING)
            | models.Q(status=EventStatus.FAILED, retry_count__lt=max_retries)
        )

    def claim(self, batch_size: int, max_retries: int = OUTBOX_MAX_RETRIES) -> list[OutboxEvent]:
        """Lock the oldest deliverable rows, skipping rows another relay holds.

        Must run inside ``transaction.atomic``.
        """
        return list(
            self.select_for_update(skip_locked=True)
            .deliverable(max_retries)
            .order_by("created_at")[:batch_size]
        )


class OutboxEvent(BaseModel):
    """A domain event waiting for (or done with) in-process delivery.

    Rows are written by the order repository inside the placing or
    cancelling transaction, so a rolled-back placement leaves no
    ``OrderPlaced`` row behind.  ``core.publish_outbox_events`` claims
    deliverable rows, rebuilds the ``DomainEvent`` from ``event_type`` and
    ``payload`` and marks each row published or failed.
    """

    event_type = models.CharField(max_length=100)
    payload = models.JSONField()
    aggregate_id = models.CharField(max_length=255)
    topic = models.CharField(max_length=100)
    status = models.CharField(
        max_length=20,
        choices=EventStatus.choices,
        default=EventStatus.PENDING,
    )
    processed_at = models.DateTimeField(null=True, blank=True, default=None)
    error_message = models.TextField(null=True, blank=True, default=None)  # noqa: DJ01
    retry_count = models.PositiveIntegerField(default=0)

    objects = OutboxEventQuerySet.as_manager()

    class Meta:
        db_table = "outbox_events"
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["aggregate_id"], name="outbox_aggregate_id_idx"),
            models.Index(fields=["status", "created_at"], name="outbox_status_created_idx"),
        ]

    @classmethod
    def record(cls, event: DomainEvent, topic: str) -> OutboxEvent:
        """Persist ``event`` as a PENDING row in the caller's transaction."""
        return cls.objects.create(
            event_type=event.event_name,
            aggregate_id=str(event.aggregate_id),
            payload=event.to_payload(),
            topic=topic,
        )

    def to_domain_event(self) -> DomainEvent:
        return DomainEvent.from_payload(self.event_type, self.payload)

    def mark_as_published(self) -> None:
        self.status = EventStatus.PUBLISHED
        self.processed_at = timezone.now()
        self.error_message = None
        self.save(update_fields=["status", "processed_at", "error_message"])

    def mark_as_failed(self, error: str) -> None:
        """Record ``error``; the row stays deliverable until retries run out."""
        self.status = EventStatus.FAILED
        self.error_message = error
        self.retry_count += 1
        self.save(update_fields=["status", "error_message", "retry_count"])

    @property
    def retries_exhausted(self) -> bool:
        return self.status == EventStatus.FAILED and self.retry_count >= OUTBOX_MAX_RETRIES

    def __str__(self) -> str:
        return f"{self.event_type} [{self.status}] ({self.aggregate_id})"
