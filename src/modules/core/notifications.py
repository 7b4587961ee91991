"""Outbox-backed implementation of ``INotificationPublisher``.

``publish`` only inserts an ``OutboxEvent`` row, so it participates in the
caller's transaction: a notification exists if and only if the state
change that produced it was committed.
"""

from __future__ import annotations

import json
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Tuple
from uuid import UUID

import structlog

from modules.core.models import OutboxEvent

logger = structlog.get_logger(__name__)

NOTIFICATIONS_TOPIC = "notifications"


class OutboxNotificationPublisher:
    """Writes one outbox row per recipient, keyed by user id."""

    def publish(self, user_id: str, event_name: str, payload: Dict[str, Any]) -> None:
        OutboxEvent.objects.create(
            event_type=event_name,
            aggregate_id=str(user_id),
            payload=serialize_payload(payload),
            topic=NOTIFICATIONS_TOPIC,
        )
        logger.info(
            "notification.queued",
            user_id=str(user_id),
            event_name=event_name,
        )


class InMemoryNotificationPublisher:
    """Collects published events; used by tests and local scripts."""

    def __init__(self) -> None:
        self.sent: List[Tuple[str, str, Dict[str, Any]]] = []

    def publish(self, user_id: str, event_name: str, payload: Dict[str, Any]) -> None:
        self.sent.append((str(user_id), event_name, payload))

    def events_for(self, user_id: str) -> List[str]:
        return [name for uid, name, _ in self.sent if uid == str(user_id)]


def serialize_payload(payload: Any) -> Dict[str, Any]:
    normalized = _normalize_for_json(payload)
    return json.loads(json.dumps(normalized))


def _normalize_for_json(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (list, tuple)):
        return [_normalize_for_json(item) for item in value]
    if isinstance(value, dict):
        return {key: _normalize_for_json(val) for key, val in value.items()}
    return value
