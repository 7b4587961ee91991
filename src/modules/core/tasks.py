"""Outbox relay task: pushes committed events to Redis pub/sub."""

import json

import structlog
from celery import shared_task
from django.conf import settings
from django_redis import get_redis_connection
from redis.exceptions import RedisError

from modules.core.models import EventStatus, OutboxEvent

logger = structlog.get_logger(__name__)


@shared_task(name="core.relay_outbox_events")
def relay_outbox_events(batch_size: int | None = None) -> dict:
    """Publish PENDING outbox rows to Redis pub/sub.

    Channel is ``<topic>:<aggregate_id>``, so a socket gateway subscribed
    to ``notifications:<user_id>`` receives that user's events in order.
    Failed rows stay visible as FAILED with the error and retry count.
    """
    limit = batch_size or settings.OUTBOX_RELAY_BATCH_SIZE
    events = list(
        OutboxEvent.objects.filter(status=EventStatus.PENDING).order_by("created_at")[
            :limit
        ]
    )
    if not events:
        return {"published": 0, "failed": 0}

    connection = get_redis_connection("default")
    published = failed = 0
    for event in events:
        message = json.dumps(
            {
                "event": event.event_type,
                "data": event.payload,
                "event_id": str(event.id),
            }
        )
        try:
            connection.publish(f"{event.topic}:{event.aggregate_id}", message)
        except RedisError as exc:
            event.mark_as_failed(str(exc))
            failed += 1
            logger.warning(
                "outbox.relay_failed",
                event_id=str(event.id),
                error=str(exc),
            )
            continue
        event.mark_as_published()
        published += 1

    logger.info("outbox.relayed", published=published, failed=failed)
    return {"published": published, "failed": failed}
