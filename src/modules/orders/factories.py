"""Composition helpers wiring the order services to their Django adapters."""

from __future__ import annotations

from django.conf import settings

from modules.core.notifications import OutboxNotificationPublisher
from modules.orders.notifications import OrderNotifier
from modules.orders.repositories import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.orders.state_machine import OrderStateMachine
from shared.infrastructure.bus import event_bus


def build_state_machine() -> OrderStateMachine:
    return OrderStateMachine(
        order_repository=OrderDjangoRepository(),
        event_bus=event_bus,
        allow_early_dispatch=settings.DISPATCH_ALLOW_ACCEPTED_ORDERS,
    )


def build_order_service() -> OrderService:
    return OrderService(
        order_repository=OrderDjangoRepository(),
        state_machine=build_state_machine(),
        notifier=OrderNotifier(OutboxNotificationPublisher()),
    )
