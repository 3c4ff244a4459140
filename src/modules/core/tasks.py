"""Tasks assíncronas do módulo core."""

from __future__ import annotations

import httpx
import structlog
from celery import shared_task
from django.conf import settings
from django.db.models import Q

from modules.core.models import EventStatus, OutboxEvent

logger = structlog.get_logger(__name__)

OUTBOX_BATCH_SIZE = 100
OUTBOX_MAX_RETRIES = 5


@shared_task(name="core.publish_outbox_events")
def publish_outbox_events(batch_size: int = OUTBOX_BATCH_SIZE) -> dict:
    """Forward pending outbox events to the analytics endpoint.

    Failed events are retried on later runs until ``OUTBOX_MAX_RETRIES``.
    Delivery problems are recorded on the event row, never raised.
    """
    url = settings.ANALYTICS_EVENTS_URL
    if not url:
        logger.info("outbox.publish_skipped", reason="analytics_url_not_configured")
        return {"published": 0, "failed": 0}

    events = list(
        OutboxEvent.objects.filter(
            Q(status=EventStatus.PENDING)
            | Q(status=EventStatus.FAILED, retry_count__lt=OUTBOX_MAX_RETRIES)
        ).order_by("created_at")[:batch_size]
    )

    headers = {}
    if settings.ANALYTICS_API_KEY:
        headers["Authorization"] = f"Bearer {settings.ANALYTICS_API_KEY}"

    published = failed = 0
    with httpx.Client(headers=headers, timeout=settings.ANALYTICS_TIMEOUT) as client:
        for event in events:
            try:
                response = client.post(
                    url,
                    json={
                        "event": event.event_type,
                        "topic": event.topic,
                        "aggregate_id": event.aggregate_id,
                        "payload": event.payload,
                        "created_at": event.created_at.isoformat(),
                    },
                )
                response.raise_for_status()
            except httpx.HTTPError as exc:
                event.mark_as_failed(str(exc))
                failed += 1
                logger.warning(
                    "outbox.publish_failed",
                    event_id=str(event.id),
                    event_type=event.event_type,
                    retry_count=event.retry_count,
                )
                continue
            event.mark_as_published()
            published += 1

    logger.info("outbox.publish_completed", published=published, failed=failed)
    return {"published": published, "failed": failed}
