"""Unit tests for the outbox relay task."""

from __future__ import annotations

import json
from unittest import mock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from modules.core.models import EventStatus, OutboxEvent
from modules.core.tasks import relay_outbox_events

pytestmark = pytest.mark.unit


def _event(user_id="42", name="order_update", **fields):
    return OutboxEvent.objects.create(
        event_type=name,
        aggregate_id=user_id,
        payload={"order_id": "abc"},
        topic="notifications",
        **fields,
    )


@pytest.fixture()
def redis_connection():
    connection = mock.Mock()
    with mock.patch(
        "modules.core.tasks.get_redis_connection", return_value=connection
    ):
        yield connection


def test_publishes_pending_events_per_recipient_channel(redis_connection):
    event = _event()

    result = relay_outbox_events()

    assert result == {"published": 1, "failed": 0}
    channel, message = redis_connection.publish.call_args.args
    assert channel == "notifications:42"
    assert json.loads(message) == {
        "event": "order_update",
        "data": {"order_id": "abc"},
        "event_id": str(event.id),
    }
    event.refresh_from_db()
    assert event.status == EventStatus.PUBLISHED
    assert event.processed_at is not None


def test_skips_already_processed_events(redis_connection):
    _event(status=EventStatus.PUBLISHED)
    _event(status=EventStatus.FAILED)

    assert relay_outbox_events() == {"published": 0, "failed": 0}
    redis_connection.publish.assert_not_called()


def test_redis_failure_marks_event_failed(redis_connection):
    event = _event()
    redis_connection.publish.side_effect = RedisConnectionError("redis down")

    result = relay_outbox_events()

    assert result == {"published": 0, "failed": 1}
    event.refresh_from_db()
    assert event.status == EventStatus.FAILED
    assert event.error_message == "redis down"
    assert event.retry_count == 1


def test_batch_size_limits_the_run(redis_connection):
    for _ in range(3):
        _event()

    assert relay_outbox_events(batch_size=2) == {"published": 2, "failed": 0}
    assert OutboxEvent.objects.filter(status=EventStatus.PENDING).count() == 1
