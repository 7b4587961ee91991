"""Unit tests for OrderService: vendor updates, cancellation and refunds."""

from __future__ import annotations

import pytest

from modules.core.notifications import InMemoryNotificationPublisher
from modules.deliveries.constants import DeliveryRequestStatus
from modules.deliveries.models import DeliveryRequest
from modules.orders.constants import ActorRole, OrderStatus, PaymentStatus
from modules.orders.exceptions import (
    InvalidOrderStatus,
    OrderNotFound,
    TransitionForbidden,
)
from modules.orders.notifications import ORDER_UPDATE_EVENT, OrderNotifier
from modules.orders.repositories import OrderDjangoRepository
from modules.orders.services import OrderService, resolve_actor
from modules.orders.state_machine import OrderStateMachine
from shared.infrastructure.bus import event_bus

pytestmark = pytest.mark.unit


@pytest.fixture()
def notifications():
    return InMemoryNotificationPublisher()


@pytest.fixture()
def service(notifications):
    # Uses the application bus so the delivery handlers react to cancellation.
    return OrderService(
        order_repository=OrderDjangoRepository(),
        state_machine=OrderStateMachine(OrderDjangoRepository(), event_bus),
        notifier=OrderNotifier(notifications),
    )


class TestResolveActor:
    def test_roles(self, make_order, vendor_user, customer_user, admin_user, make_user):
        order = make_order()
        assert resolve_actor(vendor_user, order).role == ActorRole.VENDOR
        assert resolve_actor(customer_user, order).role == ActorRole.CUSTOMER
        assert resolve_actor(admin_user, order).role == ActorRole.ADMIN
        with pytest.raises(TransitionForbidden):
            resolve_actor(make_user("stranger"), order)


class TestUpdateStatus:
    def test_vendor_accepts_and_everyone_is_notified(
        self, service, make_order, vendor_user, customer_user, notifications
    ):
        order = make_order(status=OrderStatus.PLACED)

        updated = service.update_status(str(order.id), OrderStatus.ACCEPTED, vendor_user)

        assert updated.status == OrderStatus.ACCEPTED
        assert notifications.events_for(customer_user.pk) == [ORDER_UPDATE_EVENT]
        assert notifications.events_for(vendor_user.pk) == [ORDER_UPDATE_EVENT]

    def test_unknown_order(self, service, vendor_user):
        with pytest.raises(OrderNotFound):
            service.update_status(
                "00000000-0000-0000-0000-000000000000", OrderStatus.ACCEPTED, vendor_user
            )

    def test_customer_cannot_mark_ready(self, service, make_order, customer_user):
        order = make_order(status=OrderStatus.ACCEPTED)
        with pytest.raises(TransitionForbidden):
            service.update_status(str(order.id), OrderStatus.READY, customer_user)

    def test_cancelled_via_status_goes_through_cancel_rules(
        self, service, make_order, customer_user
    ):
        order = make_order(status=OrderStatus.ACCEPTED)
        with pytest.raises(TransitionForbidden):
            service.update_status(str(order.id), OrderStatus.CANCELLED, customer_user)


class TestCancelOrder:
    def test_customer_cancels_placed_order(self, service, make_order, customer_user):
        order = make_order(status=OrderStatus.PLACED)
        cancelled = service.cancel_order(str(order.id), customer_user)
        assert cancelled.status == OrderStatus.CANCELLED

    def test_paid_order_is_refunded(self, service, make_order, admin_user):
        order = make_order(status=OrderStatus.READY, payment_status=PaymentStatus.SUCCESS)

        service.cancel_order(str(order.id), admin_user)

        order.refresh_from_db()
        assert order.payment_status == PaymentStatus.REFUNDED

    def test_unpaid_order_keeps_payment_status(self, service, make_order, admin_user):
        order = make_order(status=OrderStatus.READY)
        service.cancel_order(str(order.id), admin_user)
        order.refresh_from_db()
        assert order.payment_status == PaymentStatus.PENDING

    def test_forbidden_cancel_does_not_refund(self, service, make_order, customer_user):
        order = make_order(status=OrderStatus.READY, payment_status=PaymentStatus.SUCCESS)
        with pytest.raises(TransitionForbidden):
            service.cancel_order(str(order.id), customer_user)
        order.refresh_from_db()
        assert order.payment_status == PaymentStatus.SUCCESS

    def test_terminal_order_cannot_be_cancelled(self, service, make_order, admin_user):
        order = make_order(status=OrderStatus.DELIVERED)
        with pytest.raises(InvalidOrderStatus):
            service.cancel_order(str(order.id), admin_user)

    def test_cancel_closes_open_offers(
        self, service, make_order, make_courier, matcher, vendor_user
    ):
        order = make_order(status=OrderStatus.READY)
        make_courier()
        matcher.dispatch(str(order.id))

        service.cancel_order(str(order.id), vendor_user)

        statuses = set(
            DeliveryRequest.objects.filter(order=order).values_list("status", flat=True)
        )
        assert statuses == {DeliveryRequestStatus.REJECTED}
