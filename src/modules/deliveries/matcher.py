"""Courier matching and assignment.

Flow for one order:

1. ``dispatch`` locks the order and offers it exclusively to the nearest
   eligible courier.
2. Each rejection or expiry moves to the next candidate (``escalate``),
   until ``max_exclusive_attempts`` exclusive offers were made.
3. Then every remaining eligible courier gets a non-exclusive offer; the
   first acceptance wins.
4. ``accept`` finalizes inside one transaction: the Delivery insert (the
   one-to-one constraint is the last line of defence), the winning
   request, the superseded requests and the ASSIGNED transition.

Every write for an order happens while holding that order's row lock, so
dispatches of different orders never serialize on each other.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Callable, List, Optional, Set

import structlog
from django.db import IntegrityError, transaction
from django.utils import timezone

from modules.core.exceptions import NoCourierAvailable
from modules.couriers.exceptions import CourierNotFound
from modules.deliveries.constants import AcceptOutcome, DeliveryRequestStatus
from modules.deliveries.exceptions import (
    CourierBusy,
    CourierNotEligible,
    DeliveryAlreadyExists,
    OfferNotOwned,
    OffersStillOpen,
)
from modules.deliveries.geo import haversine_km
from modules.orders.constants import OrderStatus
from modules.orders.exceptions import InvalidOrderStatus, OrderNotFound
from modules.orders.state_machine import SYSTEM_ACTOR, Actor

if TYPE_CHECKING:
    from modules.couriers.models import Courier
    from modules.couriers.repositories.interfaces import ICourierRepository
    from modules.deliveries.config import DispatchConfig
    from modules.deliveries.ledger import DeliveryRequestLedger
    from modules.deliveries.models import Delivery, DeliveryRequest
    from modules.deliveries.notifications import DeliveryNotifier
    from modules.deliveries.repositories.interfaces import IDeliveryRepository
    from modules.deliveries.verification import VerificationGate
    from modules.orders.models import Order
    from modules.orders.notifications import OrderNotifier
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.orders.state_machine import OrderStateMachine

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Candidate:
    courier: Courier
    distance_km: float


@dataclass(frozen=True)
class AcceptResult:
    outcome: str
    request: DeliveryRequest
    delivery: Optional[Delivery] = None


class DispatchMatcher:
    """Selects couriers for an order and turns one acceptance into a Delivery."""

    def __init__(
        self,
        order_repository: IOrderRepository,
        courier_repository: ICourierRepository,
        delivery_repository: IDeliveryRepository,
        ledger: DeliveryRequestLedger,
        state_machine: OrderStateMachine,
        order_notifier: OrderNotifier,
        delivery_notifier: DeliveryNotifier,
        verification_gate: VerificationGate,
        config: DispatchConfig,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self._order_repo = order_repository
        self._courier_repo = courier_repository
        self._delivery_repo = delivery_repository
        self._ledger = ledger
        self._state_machine = state_machine
        self._order_notifier = order_notifier
        self._delivery_notifier = delivery_notifier
        self._gate = verification_gate
        self._config = config
        self._clock = clock

    # ------------------------------------------------------------------
    # Candidate selection
    # ------------------------------------------------------------------

    @property
    def dispatchable_statuses(self) -> Set[str]:
        statuses = {OrderStatus.READY}
        if self._config.allow_accepted_orders:
            statuses.add(OrderStatus.ACCEPTED)
        return statuses

    def find_candidates(self, order: Order, exclude: Set[str]) -> List[Candidate]:
        """Eligible couriers for *order*, nearest first.

        Ties on distance go to the courier whose position is most recent.
        """
        shop = order.shop
        fresh_since = self._clock() - timedelta(
            seconds=self._config.location_staleness_seconds
        )
        couriers = [
            courier
            for courier in self._courier_repo.list_available(shop.city, fresh_since)
            if str(courier.id) not in exclude
        ]
        busy = self._delivery_repo.busy_courier_ids(str(c.id) for c in couriers)

        candidates = []
        for courier in couriers:
            if str(courier.id) in busy:
                continue
            distance = haversine_km(
                shop.latitude,
                shop.longitude,
                courier.current_latitude,
                courier.current_longitude,
            )
            if distance > self._config.max_search_radius_km:
                continue
            candidates.append(Candidate(courier=courier, distance_km=distance))

        candidates.sort(
            key=lambda c: (c.distance_km, -c.courier.last_location_update.timestamp())
        )
        return candidates

    # ------------------------------------------------------------------
    # Offers
    # ------------------------------------------------------------------

    @transaction.atomic
    def dispatch(self, order_id: str) -> List[DeliveryRequest]:
        """Start (or restart) matching for an order.

        When every earlier offer went unanswered, a fresh broadcast round
        goes to all currently eligible couriers.

        Raises:
            OrderNotFound: the order does not exist.
            InvalidOrderStatus: the order is not in a dispatchable status.
            DeliveryAlreadyExists: the order already has a delivery.
            OffersStillOpen: offers for the order are still open.
            NoCourierAvailable: nobody is eligible; the order keeps its status.
        """
        order = self._lock_dispatchable(order_id)
        log = logger.bind(order_id=str(order.id))
        if self._ledger.has_live_pending(str(order.id)):
            raise OffersStillOpen(f"Order {order.id} already has open offers.")

        offers = self._issue_next(order)
        if not offers and self._ledger.offered_courier_ids(str(order.id)):
            log.info("dispatch.round_restarted")
            offers = self._broadcast(order, self.find_candidates(order, exclude=set()))
        if not offers:
            log.warning("dispatch.no_courier_available")
            raise NoCourierAvailable(f"No courier available for order {order.id}.")
        return offers

    @transaction.atomic
    def escalate(self, order_id: str) -> List[DeliveryRequest]:
        """Move to the next offer after an expiry; no-op if the order moved on.

        Raises:
            NoCourierAvailable: candidates are exhausted.
        """
        order = self._order_repo.get_for_update(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return self._escalate_locked(order)

    def _escalate_locked(self, order: Order) -> List[DeliveryRequest]:
        log = logger.bind(order_id=str(order.id), status=order.status)
        if order.status not in self.dispatchable_statuses:
            log.info("dispatch.escalation_skipped", reason="status")
            return []
        if self._delivery_repo.get_by_order_id(str(order.id)):
            log.info("dispatch.escalation_skipped", reason="assigned")
            return []
        if self._ledger.has_live_pending(str(order.id)):
            log.info("dispatch.escalation_skipped", reason="offers_open")
            return []

        offers = self._issue_next(order)
        if not offers:
            log.warning("dispatch.candidates_exhausted")
            raise NoCourierAvailable(f"No courier available for order {order.id}.")
        return offers

    def _issue_next(self, order: Order) -> List[DeliveryRequest]:
        offered = self._ledger.offered_courier_ids(str(order.id))
        candidates = self.find_candidates(order, exclude=offered)
        if not candidates:
            return []

        if self._ledger.exclusive_count(str(order.id)) < self._config.max_exclusive_attempts:
            top = candidates[0]
            request = self._ledger.create_offer(
                order,
                top.courier,
                self._config.exclusive_offer_ttl_seconds,
                distance_km=top.distance_km,
            )
            self._delivery_notifier.offer_made(request)
            logger.info(
                "dispatch.offer_issued",
                order_id=str(order.id),
                courier_id=str(top.courier.id),
                attempt_number=request.attempt_number,
                distance_km=top.distance_km,
            )
            return [request]

        return self._broadcast(order, candidates)

    def _broadcast(self, order: Order, candidates: List[Candidate]) -> List[DeliveryRequest]:
        if not candidates:
            return []
        requests = self._ledger.create_broadcast(
            order,
            [(c.courier, c.distance_km) for c in candidates],
            self._config.broadcast_offer_ttl_seconds,
        )
        for request in requests:
            self._delivery_notifier.offer_made(request)
        logger.info(
            "dispatch.broadcast_issued",
            order_id=str(order.id),
            courier_count=len(requests),
        )
        return requests

    # ------------------------------------------------------------------
    # Responses
    # ------------------------------------------------------------------

    @transaction.atomic
    def accept(self, request_id: str, courier: Courier) -> AcceptResult:
        """Accept an offer on behalf of *courier*.

        Returns an ``AcceptResult`` whose outcome is ``accepted``,
        ``already_assigned`` (someone else won, nothing changed) or
        ``expired`` (the offer timed out; it is marked EXPIRED).

        Raises:
            DeliveryRequestNotFound: no such offer.
            OfferNotOwned: the offer belongs to another courier.
            OfferAlreadyResolved: the offer was already answered.
            CourierBusy: the courier already carries an active delivery.
        """
        request = self._ledger.get(request_id)
        if str(request.courier_id) != str(courier.id):
            raise OfferNotOwned("This delivery request was offered to another courier.")

        order = self._order_repo.get_for_update(str(request.order_id))
        if not order:
            raise OrderNotFound(f"Order {request.order_id} not found.")
        log = logger.bind(
            order_id=str(order.id),
            request_id=str(request.id),
            courier_id=str(courier.id),
        )

        existing = self._delivery_repo.get_by_order_id(str(order.id))
        if existing:
            if (
                str(existing.courier_id) == str(courier.id)
                and request.status == DeliveryRequestStatus.ACCEPTED
            ):
                return AcceptResult(AcceptOutcome.ACCEPTED, request, existing)
            log.info("dispatch.accept_lost")
            return AcceptResult(AcceptOutcome.ALREADY_ASSIGNED, request)

        if request.status == DeliveryRequestStatus.EXPIRED:
            return AcceptResult(AcceptOutcome.EXPIRED, request)
        if order.status not in self.dispatchable_statuses:
            raise InvalidOrderStatus(
                f"Order {order.id} is {order.status} and can no longer be assigned."
            )
        if self._delivery_repo.busy_courier_ids([str(courier.id)]):
            raise CourierBusy("Finish your current delivery before accepting another.")

        delivery = None
        try:
            with transaction.atomic():
                resolved = self._ledger.mark_responded(
                    str(request.id), DeliveryRequestStatus.ACCEPTED
                )
                if resolved.status != DeliveryRequestStatus.EXPIRED:
                    delivery = self._create_delivery(order, courier)
        except IntegrityError:
            log.warning("dispatch.accept_race_lost")
            return AcceptResult(AcceptOutcome.ALREADY_ASSIGNED, request)

        if delivery is None:
            # The sweep only sees PENDING rows, so the next offer goes out here.
            log.info("dispatch.accept_expired")
            try:
                self._escalate_locked(order)
            except NoCourierAvailable:
                log.warning("dispatch.no_courier_after_expiry")
            return AcceptResult(AcceptOutcome.EXPIRED, resolved)

        self._complete_assignment(order, delivery, resolved, SYSTEM_ACTOR)
        log.info("dispatch.accepted", delivery_id=str(delivery.id))
        return AcceptResult(AcceptOutcome.ACCEPTED, resolved, delivery)

    @transaction.atomic
    def reject(self, request_id: str, courier: Courier) -> DeliveryRequest:
        """Decline an offer, charge the rejection penalty and move on.

        Once no offer of the order is left open, the next offer is issued in
        the same transaction.
        """
        request = self._ledger.get(request_id)
        if str(request.courier_id) != str(courier.id):
            raise OfferNotOwned("This delivery request was offered to another courier.")

        order = self._order_repo.get_for_update(str(request.order_id))
        if not order:
            raise OrderNotFound(f"Order {request.order_id} not found.")

        resolved = self._ledger.mark_responded(
            str(request.id), DeliveryRequestStatus.REJECTED
        )
        if resolved.status == DeliveryRequestStatus.REJECTED:
            penalty = self._config.rejection_penalty_amount
            self._courier_repo.apply_rejection_penalty(str(courier.id), penalty)
            self._ledger.record_penalty(resolved, penalty)

        try:
            self._escalate_locked(order)
        except NoCourierAvailable:
            logger.warning("dispatch.no_courier_after_rejection", order_id=str(order.id))
        return resolved

    # ------------------------------------------------------------------
    # Manual assignment
    # ------------------------------------------------------------------

    @transaction.atomic
    def assign(self, order_id: str, courier_id: str, actor: Actor) -> Delivery:
        """Assign a specific courier, bypassing offers.

        Raises:
            DeliveryAlreadyExists: the order already has a delivery.
            CourierNotFound / CourierNotEligible / CourierBusy: bad courier.
            TransitionForbidden: the actor may not drive READY -> ASSIGNED.
        """
        order = self._lock_dispatchable(order_id)
        courier = self._courier_repo.get_by_id(str(courier_id))
        if not courier:
            raise CourierNotFound(f"Courier {courier_id} not found.")
        if not courier.is_verified:
            raise CourierNotEligible(f"Courier {courier_id} is not verified.")
        if self._delivery_repo.busy_courier_ids([str(courier.id)]):
            raise CourierBusy(f"Courier {courier_id} already has an active delivery.")
        self._state_machine.check(order, OrderStatus.ASSIGNED, actor)

        try:
            with transaction.atomic():
                request = self._ledger.record_direct_assignment(order, courier)
                delivery = self._create_delivery(order, courier)
        except IntegrityError as exc:
            raise DeliveryAlreadyExists(f"Order {order.id} is already assigned.") from exc

        self._complete_assignment(order, delivery, request, actor)
        logger.info(
            "dispatch.manually_assigned",
            order_id=str(order.id),
            courier_id=str(courier.id),
            actor_role=actor.role,
        )
        return delivery

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _lock_dispatchable(self, order_id: str) -> Order:
        order = self._order_repo.get_for_update(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        if order.status not in self.dispatchable_statuses:
            raise InvalidOrderStatus(
                f"Order {order.id} is {order.status}; only "
                f"{', '.join(sorted(self.dispatchable_statuses))} orders can be dispatched."
            )
        if self._delivery_repo.get_by_order_id(str(order.id)):
            raise DeliveryAlreadyExists(f"Order {order.id} is already assigned.")
        return order

    def _create_delivery(self, order: Order, courier: Courier) -> Delivery:
        return self._delivery_repo.create(
            {
                "order": order,
                "courier": courier,
                "delivery_fee": order.delivery_fee,
                "tip": order.tip,
                "verification_code": self._gate.generate(),
            }
        )

    def _complete_assignment(
        self,
        order: Order,
        delivery: Delivery,
        request: DeliveryRequest,
        actor: Actor,
    ) -> None:
        self._state_machine.transition(
            order,
            OrderStatus.ASSIGNED,
            actor,
            notes=f"Assigned to courier {delivery.courier_id}",
        )
        self._ledger.supersede_pending(str(order.id), exclude_id=str(request.id))

        courier = delivery.courier
        self._delivery_notifier.delivery_assigned(delivery)
        self._order_notifier.order_updated(
            order,
            extra={
                "delivery_id": str(delivery.id),
                "courier": {
                    "name": courier.name,
                    "phone": courier.phone,
                    "vehicle_type": courier.vehicle_type,
                    "vehicle_number": courier.vehicle_number,
                },
            },
            customer_extra={"verification_code": delivery.verification_code},
        )
