"""Unit tests for notification publishers and the order/delivery notifiers."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

import pytest

from modules.core.models import OutboxEvent
from modules.core.notifications import (
    NOTIFICATIONS_TOPIC,
    InMemoryNotificationPublisher,
    OutboxNotificationPublisher,
    serialize_payload,
)
from modules.deliveries.constants import DELIVERY_REQUEST_EVENT, NEW_DELIVERY_EVENT
from modules.deliveries.notifications import DeliveryNotifier
from modules.orders.constants import OrderStatus
from modules.orders.notifications import ORDER_UPDATE_EVENT, OrderNotifier

pytestmark = pytest.mark.unit


def test_serialize_payload_normalizes_values():
    payload = {
        "when": datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
        "id": UUID("12345678-1234-5678-1234-567812345678"),
        "fee": Decimal("45.50"),
        "nested": [{"tip": Decimal("5")}],
    }

    assert serialize_payload(payload) == {
        "when": "2024-05-01T12:00:00+00:00",
        "id": "12345678-1234-5678-1234-567812345678",
        "fee": "45.50",
        "nested": [{"tip": "5"}],
    }


def test_outbox_publisher_writes_one_row_per_recipient():
    OutboxNotificationPublisher().publish("7", ORDER_UPDATE_EVENT, {"fee": Decimal("1.00")})

    event = OutboxEvent.objects.get()
    assert event.aggregate_id == "7"
    assert event.topic == NOTIFICATIONS_TOPIC
    assert event.event_type == ORDER_UPDATE_EVENT
    assert event.payload == {"fee": "1.00"}


class TestOrderNotifier:
    def test_customer_and_shop_owner_are_notified(
        self, make_order, customer_user, vendor_user
    ):
        publisher = InMemoryNotificationPublisher()
        order = make_order(status=OrderStatus.PICKED_UP)

        OrderNotifier(publisher).order_updated(order, extra={"delivery_id": "d1"})

        assert [uid for uid, _, _ in publisher.sent] == [
            str(customer_user.pk),
            str(vendor_user.pk),
        ]
        _, name, body = publisher.sent[0]
        assert name == ORDER_UPDATE_EVENT
        assert body["status"] == OrderStatus.PICKED_UP
        assert body["message"] == "Your order has been picked up."
        assert body["payload"] == {"delivery_id": "d1"}

    def test_customer_extra_stays_with_the_customer(self, make_order, vendor_user):
        publisher = InMemoryNotificationPublisher()
        order = make_order()

        OrderNotifier(publisher).order_updated(
            order, message="Assigned", customer_extra={"verification_code": "123456"}
        )

        customer_body = publisher.sent[0][2]
        vendor_body = publisher.sent[1][2]
        assert customer_body["payload"]["verification_code"] == "123456"
        assert "verification_code" not in vendor_body["payload"]
        assert vendor_body["message"] == "Assigned"


class TestDeliveryNotifier:
    def test_offer_and_assignment_events(self, assigned, make_courier, ledger):
        publisher = InMemoryNotificationPublisher()
        order, delivery, courier = assigned
        notifier = DeliveryNotifier(publisher)
        other = make_courier(offset_km=2)
        offer = ledger.create_offer(order, other, 15, distance_km=2.0)

        notifier.offer_made(offer)
        notifier.delivery_assigned(delivery)

        (offer_uid, offer_name, offer_body), (new_uid, new_name, new_body) = publisher.sent
        assert (offer_uid, offer_name) == (other.user_id, DELIVERY_REQUEST_EVENT)
        assert offer_body["pickup_location"]["shop_name"] == "Corner Bakery"
        assert offer_body["is_exclusive"] is True
        assert offer_body["distance_km"] == 2.0
        assert (new_uid, new_name) == (courier.user_id, NEW_DELIVERY_EVENT)
        assert new_body["delivery_id"] == str(delivery.id)
        assert "verification_code" not in new_body
