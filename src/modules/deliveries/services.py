"""Delivery use cases driven by couriers and participants.

- ``DeliveryService``: courier status updates along the courier edges,
  handover confirmation with the verification code, and settlement.
- ``TrackingService``: live position, route/ETA and the GPS log.

Both lock the order row before changing anything tied to its lifecycle.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Callable, Dict, List

import structlog
from django.db import transaction
from django.utils import timezone

from modules.core.exceptions import Forbidden
from modules.couriers.exceptions import CourierNotFound
from modules.deliveries.constants import (
    LOCATION_HISTORY_DEFAULT_LIMIT,
    LOCATION_HISTORY_MAX_LIMIT,
    DeliveryScope,
)
from modules.deliveries.exceptions import DeliveryClosed, DeliveryNotFound
from modules.deliveries.geo import estimate_eta_minutes, validate_coordinates
from modules.orders.constants import (
    TERMINAL_STATES,
    ActorRole,
    OrderStatus,
    PaymentStatus,
)
from modules.orders.exceptions import OrderNotFound
from modules.orders.state_machine import Actor

if TYPE_CHECKING:
    from modules.couriers.models import Courier
    from modules.couriers.repositories.interfaces import ICourierRepository
    from modules.deliveries.dtos import LocationPingDTO, RouteUpdateDTO
    from modules.deliveries.earnings import EarningsCalculator
    from modules.deliveries.models import Delivery, DeliveryLocation
    from modules.deliveries.repositories.interfaces import IDeliveryRepository
    from modules.deliveries.verification import VerificationGate
    from modules.orders.notifications import OrderNotifier
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.orders.state_machine import OrderStateMachine

logger = structlog.get_logger(__name__)


def _courier_for(courier_repo: ICourierRepository, user: Any) -> Courier:
    courier = courier_repo.get_by_user_id(str(user.pk))
    if not courier:
        raise CourierNotFound("No courier profile for this user.")
    return courier


class DeliveryService:
    """Courier-side lifecycle of an assigned order."""

    def __init__(
        self,
        order_repository: IOrderRepository,
        delivery_repository: IDeliveryRepository,
        courier_repository: ICourierRepository,
        state_machine: OrderStateMachine,
        verification_gate: VerificationGate,
        earnings_calculator: EarningsCalculator,
        rate_resolver: Callable[[Courier], Decimal],
        notifier: OrderNotifier,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self._order_repo = order_repository
        self._delivery_repo = delivery_repository
        self._courier_repo = courier_repository
        self._state_machine = state_machine
        self._gate = verification_gate
        self._earnings = earnings_calculator
        self._rate_resolver = rate_resolver
        self._notifier = notifier
        self._clock = clock

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def update_status(
        self,
        order_id: str,
        new_status: str,
        user: Any,
        verification_code: str | None = None,
    ) -> Delivery:
        """Advance the order along a courier edge.

        DELIVERED additionally requires the customer's verification code,
        stops tracking and settles the delivery, all in this transaction.

        Raises:
            OrderNotFound / DeliveryNotFound: nothing to update.
            TransitionForbidden: the user is not the assigned courier.
            InvalidOrderStatus: *new_status* is not the next courier step.
            InvalidVerificationCode: wrong code; nothing is changed.
        """
        order = self._order_repo.get_for_update(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        delivery = self._delivery_repo.get_by_order_id(str(order.id))
        if not delivery:
            raise DeliveryNotFound(f"Order {order_id} has no delivery.")

        actor = Actor(role=ActorRole.COURIER, user_id=str(user.pk))
        assigned_courier_id = delivery.courier.user_id
        self._state_machine.check(
            order, new_status, actor, assigned_courier_id=assigned_courier_id
        )
        if new_status == OrderStatus.DELIVERED:
            self._gate.validate(delivery, verification_code)

        log = logger.bind(
            order_id=str(order.id),
            delivery_id=str(delivery.id),
            new_status=new_status,
        )
        self._state_machine.transition(
            order, new_status, actor, assigned_courier_id=assigned_courier_id
        )

        now = self._clock()
        if new_status == OrderStatus.PICKED_UP:
            self._delivery_repo.update_fields(str(delivery.id), pickup_time=now)
            delivery.pickup_time = now
        elif new_status == OrderStatus.DELIVERED:
            self._complete(order, delivery, now)

        self._notifier.order_updated(order, extra={"delivery_id": str(delivery.id)})
        log.info("delivery.status_updated")
        return delivery

    def confirm(self, order_id: str, verification_code: str, user: Any) -> Delivery:
        """Handover: mark the order DELIVERED after checking the code."""
        return self.update_status(
            order_id,
            OrderStatus.DELIVERED,
            user,
            verification_code=verification_code,
        )

    def _complete(self, order, delivery: Delivery, now: datetime) -> None:
        self._delivery_repo.update_fields(
            str(delivery.id), delivery_time=now, is_tracking=False
        )
        delivery.delivery_time = now
        delivery.is_tracking = False

        rate = self._rate_resolver(delivery.courier)
        self._earnings.settle(delivery, rate)

        if order.payment_status == PaymentStatus.PENDING:
            order.payment_status = PaymentStatus.SUCCESS
            order.save(update_fields=["payment_status"])

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_for_courier(self, user: Any, scope: str = DeliveryScope.ACTIVE) -> List[Delivery]:
        courier = _courier_for(self._courier_repo, user)
        return self._delivery_repo.list_for_courier(
            str(courier.id), active=scope == DeliveryScope.ACTIVE
        )


class TrackingService:
    """Live tracking of a delivery in progress."""

    def __init__(
        self,
        delivery_repository: IDeliveryRepository,
        courier_repository: ICourierRepository,
        average_speed_kmh: float,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self._delivery_repo = delivery_repository
        self._courier_repo = courier_repository
        self._average_speed_kmh = average_speed_kmh
        self._clock = clock

    # ------------------------------------------------------------------
    # Access helpers
    # ------------------------------------------------------------------

    def _get(self, delivery_id: str) -> Delivery:
        delivery = self._delivery_repo.get_by_id(str(delivery_id))
        if not delivery:
            raise DeliveryNotFound(f"Delivery {delivery_id} not found.")
        return delivery

    def _get_for_courier(self, delivery_id: str, user: Any) -> Delivery:
        delivery = self._get(delivery_id)
        if delivery.courier.user_id != str(user.pk):
            raise Forbidden("This delivery is not assigned to you.")
        return delivery

    def _get_for_participant(self, delivery_id: str, user: Any) -> Delivery:
        delivery = self._get(delivery_id)
        user_id = str(user.pk)
        order = delivery.order
        participants = {
            delivery.courier.user_id,
            str(order.customer_id),
            str(order.shop.owner_id),
        }
        if user_id not in participants and not getattr(user, "is_staff", False):
            raise Forbidden("You cannot follow this delivery.")
        return delivery

    @staticmethod
    def _ensure_open(delivery: Delivery) -> None:
        if delivery.order.status in TERMINAL_STATES:
            raise DeliveryClosed(
                f"Delivery {delivery.id} is {delivery.order.status.lower()}."
            )

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def start(self, delivery_id: str, user: Any) -> Delivery:
        delivery = self._get_for_courier(delivery_id, user)
        self._ensure_open(delivery)
        if not delivery.is_tracking:
            now = self._clock()
            self._delivery_repo.update_fields(
                str(delivery.id), is_tracking=True, tracking_started_at=now
            )
            delivery.is_tracking = True
            delivery.tracking_started_at = now
            logger.info("tracking.started", delivery_id=str(delivery.id))
        return delivery

    def stop(self, delivery_id: str, user: Any) -> Delivery:
        delivery = self._get_for_courier(delivery_id, user)
        if delivery.is_tracking:
            self._delivery_repo.update_fields(str(delivery.id), is_tracking=False)
            delivery.is_tracking = False
            logger.info("tracking.stopped", delivery_id=str(delivery.id))
        return delivery

    @transaction.atomic
    def record_location(
        self, delivery_id: str, user: Any, dto: LocationPingDTO
    ) -> DeliveryLocation:
        """Store a GPS sample: current position (last write wins) plus log row."""
        validate_coordinates(dto.latitude, dto.longitude)
        delivery = self._get_for_courier(delivery_id, user)
        self._ensure_open(delivery)

        now = self._clock()
        self._delivery_repo.update_fields(
            str(delivery.id),
            current_latitude=dto.latitude,
            current_longitude=dto.longitude,
            last_location_update=now,
        )
        self._courier_repo.update_location(
            str(delivery.courier_id), dto.latitude, dto.longitude, now
        )
        return self._delivery_repo.add_location(
            str(delivery.id),
            {
                "latitude": dto.latitude,
                "longitude": dto.longitude,
                "speed": dto.speed,
                "heading": dto.heading,
                "accuracy": dto.accuracy,
                "recorded_at": now,
            },
        )

    def update_route(self, delivery_id: str, user: Any, dto: RouteUpdateDTO) -> Delivery:
        delivery = self._get_for_courier(delivery_id, user)
        self._ensure_open(delivery)

        eta_minutes = dto.eta_minutes
        if eta_minutes is None:
            eta_minutes = estimate_eta_minutes(dto.distance_km, self._average_speed_kmh)
        estimated_delivery_at = self._clock() + timedelta(minutes=eta_minutes)

        fields: Dict[str, Any] = {
            "eta_minutes": eta_minutes,
            "estimated_delivery_at": estimated_delivery_at,
        }
        if dto.route_polyline:
            fields["route_polyline"] = dto.route_polyline
        if dto.distance_km is not None:
            fields["distance_km"] = dto.distance_km
        self._delivery_repo.update_fields(str(delivery.id), **fields)
        for name, value in fields.items():
            setattr(delivery, name, value)

        logger.info(
            "tracking.route_updated",
            delivery_id=str(delivery.id),
            eta_minutes=eta_minutes,
        )
        return delivery

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def current_location(self, delivery_id: str, user: Any) -> Delivery:
        return self._get_for_participant(delivery_id, user)

    def history(
        self, delivery_id: str, user: Any, limit: int = LOCATION_HISTORY_DEFAULT_LIMIT
    ) -> List[DeliveryLocation]:
        delivery = self._get_for_participant(delivery_id, user)
        limit = max(1, min(int(limit), LOCATION_HISTORY_MAX_LIMIT))
        return self._delivery_repo.location_history(str(delivery.id), limit)
