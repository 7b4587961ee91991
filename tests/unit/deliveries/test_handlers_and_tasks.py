"""Unit tests for lifecycle handlers and the dispatch Celery tasks."""

from __future__ import annotations

from datetime import timedelta
from unittest import mock

import pytest
from django.utils import timezone

from modules.core.models import OutboxEvent
from modules.deliveries.constants import DELIVERY_REQUEST_EVENT, DeliveryRequestStatus
from modules.deliveries.handlers import order_dispatchable_handler
from modules.deliveries.models import DeliveryRequest
from modules.deliveries.tasks import dispatch_order, expire_stale_offers
from modules.orders.constants import ActorRole, OrderStatus
from modules.orders.events import OrderStatusChanged
from modules.orders.factories import build_order_service

pytestmark = pytest.mark.unit


def _status_changed(order, new_status):
    return OrderStatusChanged(
        aggregate_id=order.id,
        old_status=OrderStatus.ACCEPTED,
        new_status=new_status,
        actor_role=ActorRole.VENDOR,
    )


class TestOrderDispatchableHandler:
    def test_ready_queues_dispatch_after_commit(
        self, make_order, django_capture_on_commit_callbacks
    ):
        order = make_order()
        with mock.patch("modules.deliveries.tasks.dispatch_order.delay") as delay:
            with django_capture_on_commit_callbacks() as callbacks:
                order_dispatchable_handler.handle(_status_changed(order, OrderStatus.READY))
            delay.assert_not_called()
            assert len(callbacks) == 1
            callbacks[0]()
        delay.assert_called_once_with(str(order.id))

    def test_other_statuses_are_ignored(self, make_order, django_capture_on_commit_callbacks):
        order = make_order(status=OrderStatus.ACCEPTED)
        with django_capture_on_commit_callbacks() as callbacks:
            order_dispatchable_handler.handle(_status_changed(order, OrderStatus.ACCEPTED))
        assert callbacks == []

    def test_accepted_is_dispatchable_when_enabled(
        self, settings, make_order, django_capture_on_commit_callbacks
    ):
        settings.DISPATCH_ALLOW_ACCEPTED_ORDERS = True
        order = make_order(status=OrderStatus.ACCEPTED)
        with django_capture_on_commit_callbacks() as callbacks:
            order_dispatchable_handler.handle(_status_changed(order, OrderStatus.ACCEPTED))
        assert len(callbacks) == 1

    def test_vendor_marking_ready_offers_the_order(
        self, make_order, make_courier, vendor_user, django_capture_on_commit_callbacks
    ):
        courier = make_courier()
        order = make_order(status=OrderStatus.ACCEPTED)

        with django_capture_on_commit_callbacks(execute=True):
            build_order_service().update_status(str(order.id), OrderStatus.READY, vendor_user)

        offer = DeliveryRequest.objects.get(order=order)
        assert offer.courier_id == courier.id
        assert OutboxEvent.objects.filter(
            aggregate_id=courier.user_id, event_type=DELIVERY_REQUEST_EVENT
        ).exists()


class TestDispatchOrderTask:
    def test_offers_to_nearest_courier(self, make_order, make_courier):
        make_courier(offset_km=3)
        near = make_courier(offset_km=1)
        order = make_order()

        result = dispatch_order(str(order.id))

        assert result == {"order_id": str(order.id), "offers": 1}
        assert DeliveryRequest.objects.get(order=order).courier_id == near.id

    def test_no_courier(self, make_order):
        order = make_order()
        assert dispatch_order(str(order.id)) == {"order_id": str(order.id), "offers": 0}

    def test_order_no_longer_dispatchable_is_skipped(self, make_order, make_courier):
        make_courier()
        order = make_order(status=OrderStatus.CANCELLED)

        result = dispatch_order(str(order.id))

        assert result["offers"] == 0
        assert result["skipped"] == "invalid_transition"
        assert not DeliveryRequest.objects.exists()


class TestExpireStaleOffersTask:
    def test_lapsed_offer_moves_to_next_candidate(self, make_order, make_courier):
        first = make_courier(offset_km=1)
        second = make_courier(offset_km=2)
        order = make_order()
        dispatch_order(str(order.id))
        DeliveryRequest.objects.filter(order=order).update(
            expires_at=timezone.now() - timedelta(seconds=1)
        )

        result = expire_stale_offers()

        assert result == {"orders": 1, "escalated": 1, "exhausted": 0}
        requests = list(DeliveryRequest.objects.filter(order=order).order_by("attempt_number"))
        assert [(r.courier_id, r.status) for r in requests] == [
            (first.id, DeliveryRequestStatus.EXPIRED),
            (second.id, DeliveryRequestStatus.PENDING),
        ]

    def test_exhausted_candidates_are_counted(self, make_order, make_courier):
        make_courier()
        order = make_order()
        dispatch_order(str(order.id))
        DeliveryRequest.objects.filter(order=order).update(
            expires_at=timezone.now() - timedelta(seconds=1)
        )

        result = expire_stale_offers()

        assert result == {"orders": 1, "escalated": 0, "exhausted": 1}
        order.refresh_from_db()
        assert order.status == OrderStatus.READY

    def test_nothing_to_expire(self):
        assert expire_stale_offers() == {"orders": 0, "escalated": 0, "exhausted": 0}
