"""Ledger of delivery offers.

Every offer made to a courier is one ``DeliveryRequest`` row.  The ledger
owns attempt numbering, the single-response rule and expiry; it never
decides *whom* to offer to (that is the matcher's job).

All methods assume the caller holds the order row lock when they create or
resolve requests of that order, which is what keeps attempt numbers
strictly increasing without gaps or duplicates.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING, Callable, Iterable, List, Optional, Set, Tuple

import structlog
from django.db import transaction
from django.utils import timezone

from modules.deliveries.constants import DeliveryRequestStatus
from modules.deliveries.exceptions import (
    DeliveryRequestNotFound,
    OfferAlreadyResolved,
)

if TYPE_CHECKING:
    from modules.couriers.models import Courier
    from modules.deliveries.models import DeliveryRequest
    from modules.deliveries.repositories.interfaces import IDeliveryRequestRepository
    from modules.orders.models import Order

logger = structlog.get_logger(__name__)


class DeliveryRequestLedger:
    """Creates, resolves and expires offers."""

    def __init__(
        self,
        request_repository: IDeliveryRequestRepository,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self._request_repo = request_repository
        self._clock = clock

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_offer(
        self,
        order: Order,
        courier: Courier,
        ttl_seconds: int,
        distance_km: Optional[float] = None,
    ) -> DeliveryRequest:
        """Record an exclusive offer with the next attempt number."""
        return self._create(order, courier, ttl_seconds, True, distance_km)

    def create_broadcast(
        self,
        order: Order,
        candidates: Iterable[Tuple[Courier, float]],
        ttl_seconds: int,
    ) -> List[DeliveryRequest]:
        """Record one non-exclusive offer per candidate, sharing one deadline."""
        expires_at = self._clock() + timedelta(seconds=ttl_seconds)
        requests = []
        for courier, distance_km in candidates:
            requests.append(
                self._create(
                    order,
                    courier,
                    ttl_seconds,
                    False,
                    distance_km,
                    expires_at=expires_at,
                )
            )
        logger.info(
            "ledger.broadcast_created",
            order_id=str(order.id),
            offer_count=len(requests),
        )
        return requests

    def record_direct_assignment(self, order: Order, courier: Courier) -> DeliveryRequest:
        """Record a manual assignment as an exclusive offer accepted on the spot."""
        request = self._create(order, courier, 0, True, None)
        request.status = DeliveryRequestStatus.ACCEPTED
        request.responded_at = request.created_at
        self._request_repo.save(request)
        return request

    def _create(
        self,
        order: Order,
        courier: Courier,
        ttl_seconds: int,
        is_exclusive: bool,
        distance_km: Optional[float],
        expires_at: Optional[datetime] = None,
    ) -> DeliveryRequest:
        attempt_number = self._request_repo.max_attempt_number(str(order.id)) + 1
        request = self._request_repo.create(
            {
                "order": order,
                "courier": courier,
                "status": DeliveryRequestStatus.PENDING,
                "expires_at": expires_at
                or self._clock() + timedelta(seconds=ttl_seconds),
                "is_exclusive": is_exclusive,
                "attempt_number": attempt_number,
                "distance_km": distance_km,
            }
        )
        logger.info(
            "ledger.offer_created",
            request_id=str(request.id),
            order_id=str(order.id),
            courier_id=str(courier.id),
            attempt_number=attempt_number,
            is_exclusive=is_exclusive,
        )
        return request

    # ------------------------------------------------------------------
    # Responses
    # ------------------------------------------------------------------

    @transaction.atomic
    def mark_responded(self, request_id: str, outcome: str) -> DeliveryRequest:
        """Resolve a PENDING offer as ACCEPTED or REJECTED.

        An offer already past ``expires_at`` is marked EXPIRED instead and
        returned with that status, whether or not the sweep has run.

        Raises:
            DeliveryRequestNotFound: no such request.
            OfferAlreadyResolved: the request is no longer PENDING, or
                another request of the order was already accepted.
        """
        if outcome not in (
            DeliveryRequestStatus.ACCEPTED,
            DeliveryRequestStatus.REJECTED,
        ):
            raise ValueError(f"Unsupported response outcome {outcome!r}.")

        request = self._request_repo.get_for_update(str(request_id))
        if not request:
            raise DeliveryRequestNotFound(f"Delivery request {request_id} not found.")
        if request.status != DeliveryRequestStatus.PENDING:
            raise OfferAlreadyResolved(
                f"Delivery request {request_id} is already {request.status}."
            )

        now = self._clock()
        log = logger.bind(request_id=str(request.id), order_id=str(request.order_id))
        if now >= request.expires_at:
            request.status = DeliveryRequestStatus.EXPIRED
            self._request_repo.save(request)
            log.info("ledger.offer_expired_on_response")
            return request

        if outcome == DeliveryRequestStatus.ACCEPTED and self._request_repo.has_accepted(
            str(request.order_id)
        ):
            raise OfferAlreadyResolved(
                f"Order {request.order_id} already has an accepted request."
            )

        request.status = outcome
        request.responded_at = now
        self._request_repo.save(request)
        log.info("ledger.offer_responded", outcome=outcome)
        return request

    def record_penalty(self, request: DeliveryRequest, amount: Decimal) -> None:
        request.penalty_applied = True
        request.penalty_amount = amount
        self._request_repo.save(request)

    def supersede_pending(self, order_id: str, exclude_id: Optional[str] = None) -> int:
        """Close the order's other open offers once it has been assigned or cancelled."""
        count = self._request_repo.supersede_pending(str(order_id), exclude_id)
        if count:
            logger.info("ledger.offers_superseded", order_id=str(order_id), count=count)
        return count

    def expire_stale(self) -> List[str]:
        """Expire overdue offers; returns the distinct affected order ids."""
        expired = self._request_repo.expire_stale(self._clock())
        order_ids: List[str] = []
        for _, order_id in expired:
            if order_id not in order_ids:
                order_ids.append(order_id)
        if expired:
            logger.info(
                "ledger.offers_expired",
                request_count=len(expired),
                order_count=len(order_ids),
            )
        return order_ids

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, request_id: str) -> DeliveryRequest:
        request = self._request_repo.get_by_id(str(request_id))
        if not request:
            raise DeliveryRequestNotFound(f"Delivery request {request_id} not found.")
        return request

    def has_live_pending(self, order_id: str) -> bool:
        return self._request_repo.has_live_pending(str(order_id), self._clock())

    def exclusive_count(self, order_id: str) -> int:
        return self._request_repo.count_exclusive(str(order_id))

    def offered_courier_ids(self, order_id: str) -> Set[str]:
        return self._request_repo.offered_courier_ids(str(order_id))

    def list_for_order(self, order_id: str) -> List[DeliveryRequest]:
        return self._request_repo.list_for_order(str(order_id))

    def live_for_courier(self, courier_id: str) -> List[DeliveryRequest]:
        return self._request_repo.live_for_courier(str(courier_id), self._clock())
