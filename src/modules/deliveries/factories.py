"""Composition helpers wiring the delivery services to their Django adapters."""

from __future__ import annotations

from modules.commissions.factories import build_commission_service
from modules.core.notifications import OutboxNotificationPublisher
from modules.couriers.repositories import CourierDjangoRepository
from modules.deliveries.config import DispatchConfig
from modules.deliveries.earnings import EarningsCalculator
from modules.deliveries.ledger import DeliveryRequestLedger
from modules.deliveries.matcher import DispatchMatcher
from modules.deliveries.notifications import DeliveryNotifier
from modules.deliveries.repositories import (
    DeliveryDjangoRepository,
    DeliveryRequestDjangoRepository,
)
from modules.deliveries.services import DeliveryService, TrackingService
from modules.deliveries.verification import VerificationGate
from modules.orders.factories import build_state_machine
from modules.orders.notifications import OrderNotifier
from modules.orders.repositories import OrderDjangoRepository


def build_ledger() -> DeliveryRequestLedger:
    return DeliveryRequestLedger(request_repository=DeliveryRequestDjangoRepository())


def build_dispatch_matcher(config: DispatchConfig | None = None) -> DispatchMatcher:
    publisher = OutboxNotificationPublisher()
    return DispatchMatcher(
        order_repository=OrderDjangoRepository(),
        courier_repository=CourierDjangoRepository(),
        delivery_repository=DeliveryDjangoRepository(),
        ledger=build_ledger(),
        state_machine=build_state_machine(),
        order_notifier=OrderNotifier(publisher),
        delivery_notifier=DeliveryNotifier(publisher),
        verification_gate=VerificationGate(),
        config=config or DispatchConfig.from_settings(),
    )


def build_delivery_service() -> DeliveryService:
    delivery_repository = DeliveryDjangoRepository()
    courier_repository = CourierDjangoRepository()
    order_repository = OrderDjangoRepository()
    return DeliveryService(
        order_repository=order_repository,
        delivery_repository=delivery_repository,
        courier_repository=courier_repository,
        state_machine=build_state_machine(),
        verification_gate=VerificationGate(),
        earnings_calculator=EarningsCalculator(
            delivery_repository=delivery_repository,
            courier_repository=courier_repository,
            order_repository=order_repository,
        ),
        rate_resolver=build_commission_service().resolve_courier_rate,
        notifier=OrderNotifier(OutboxNotificationPublisher()),
    )


def build_tracking_service() -> TrackingService:
    return TrackingService(
        delivery_repository=DeliveryDjangoRepository(),
        courier_repository=CourierDjangoRepository(),
        average_speed_kmh=DispatchConfig.from_settings().average_speed_kmh,
    )
