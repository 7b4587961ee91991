"""Django ORM implementation of the Delivery and DeliveryRequest repositories.

Concurrency control:
- The order row lock taken by the matcher serializes every write that
  creates or resolves requests for that order.
- Delivery uniqueness is enforced by the one-to-one constraint on
  ``order``; ``create`` lets ``IntegrityError`` propagate.
- The sweep expires rows with a conditional UPDATE (``status=PENDING``),
  so a concurrent acceptance and the sweep never both win.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Max

from modules.deliveries.constants import DeliveryRequestStatus
from modules.deliveries.models import Delivery, DeliveryLocation, DeliveryRequest
from modules.deliveries.repositories.interfaces import (
    IDeliveryRepository,
    IDeliveryRequestRepository,
)
from modules.orders.constants import ACTIVE_DELIVERY_STATES

logger = structlog.get_logger(__name__)


class DeliveryDjangoRepository(IDeliveryRepository):
    """Concrete Delivery repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[Delivery]:
        try:
            return (
                Delivery.objects.select_related("order", "order__shop", "courier")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def get_by_order_id(self, order_id: str) -> Optional[Delivery]:
        try:
            return (
                Delivery.objects.select_related("order", "order__shop", "courier")
                .filter(order_id=order_id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Delivery]:
        try:
            return (
                Delivery.objects.select_for_update(of=("self",))
                .select_related("order", "courier")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def save(self, entity: Delivery) -> Delivery:
        entity.save()
        return entity

    def create(self, data: Dict[str, Any]) -> Delivery:
        delivery = Delivery.objects.create(**data)
        logger.info(
            "delivery.created",
            delivery_id=str(delivery.id),
            order_id=str(delivery.order_id),
            courier_id=str(delivery.courier_id),
        )
        return delivery

    def busy_courier_ids(self, courier_ids: Iterable[str]) -> Set[str]:
        ids = [str(cid) for cid in courier_ids]
        if not ids:
            return set()
        busy = Delivery.objects.filter(
            courier_id__in=ids,
            order__status__in=ACTIVE_DELIVERY_STATES,
        ).values_list("courier_id", flat=True)
        return {str(cid) for cid in busy}

    def list_for_courier(self, courier_id: str, active: bool) -> List[Delivery]:
        queryset = Delivery.objects.select_related("order", "order__shop").filter(
            courier_id=courier_id
        )
        if active:
            queryset = queryset.filter(order__status__in=ACTIVE_DELIVERY_STATES)
        else:
            queryset = queryset.exclude(order__status__in=ACTIVE_DELIVERY_STATES)
        return list(queryset.order_by("-created_at"))

    def update_fields(self, delivery_id: str, **fields: Any) -> int:
        return Delivery.objects.filter(id=delivery_id).update(**fields)

    def add_location(self, delivery_id: str, data: Dict[str, Any]) -> DeliveryLocation:
        return DeliveryLocation.objects.create(delivery_id=delivery_id, **data)

    def location_history(self, delivery_id: str, limit: int) -> List[DeliveryLocation]:
        return list(
            DeliveryLocation.objects.filter(delivery_id=delivery_id).order_by(
                "-recorded_at", "-id"
            )[:limit]
        )

    def record_settlement(
        self,
        delivery_id: str,
        commission_amount: Decimal,
        partner_earnings: Decimal,
        settled_at: datetime,
    ) -> None:
        Delivery.objects.filter(id=delivery_id).update(
            commission_amount=commission_amount,
            partner_earnings=partner_earnings,
            settled_at=settled_at,
        )


class DeliveryRequestDjangoRepository(IDeliveryRequestRepository):
    """Concrete DeliveryRequest repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[DeliveryRequest]:
        try:
            return (
                DeliveryRequest.objects.select_related("order", "courier")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[DeliveryRequest]:
        try:
            return (
                DeliveryRequest.objects.select_for_update(of=("self",))
                .select_related("courier")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def save(self, entity: DeliveryRequest) -> DeliveryRequest:
        entity.save()
        return entity

    def create(self, data: Dict[str, Any]) -> DeliveryRequest:
        return DeliveryRequest.objects.create(**data)

    def max_attempt_number(self, order_id: str) -> int:
        result = DeliveryRequest.objects.filter(order_id=order_id).aggregate(
            highest=Max("attempt_number")
        )
        return result["highest"] or 0

    def list_for_order(self, order_id: str) -> List[DeliveryRequest]:
        return list(
            DeliveryRequest.objects.filter(order_id=order_id).order_by(
                "attempt_number"
            )
        )

    def offered_courier_ids(self, order_id: str) -> Set[str]:
        ids = DeliveryRequest.objects.filter(order_id=order_id).values_list(
            "courier_id", flat=True
        )
        return {str(cid) for cid in ids}

    def count_exclusive(self, order_id: str) -> int:
        return DeliveryRequest.objects.filter(
            order_id=order_id, is_exclusive=True
        ).count()

    def has_accepted(self, order_id: str) -> bool:
        return DeliveryRequest.objects.filter(
            order_id=order_id, status=DeliveryRequestStatus.ACCEPTED
        ).exists()

    def has_live_pending(self, order_id: str, now: datetime) -> bool:
        return DeliveryRequest.objects.filter(
            order_id=order_id,
            status=DeliveryRequestStatus.PENDING,
            expires_at__gt=now,
        ).exists()

    def supersede_pending(self, order_id: str, exclude_id: Optional[str]) -> int:
        queryset = DeliveryRequest.objects.filter(
            order_id=order_id, status=DeliveryRequestStatus.PENDING
        )
        if exclude_id:
            queryset = queryset.exclude(id=exclude_id)
        return queryset.update(status=DeliveryRequestStatus.REJECTED)

    @transaction.atomic
    def expire_stale(self, now: datetime) -> List[Tuple[str, str]]:
        candidates = list(
            DeliveryRequest.objects.filter(
                status=DeliveryRequestStatus.PENDING,
                expires_at__lte=now,
            ).values_list("id", "order_id")
        )
        expired: List[Tuple[str, str]] = []
        for request_id, order_id in candidates:
            # Conditional write: a concurrent response may have resolved it.
            changed = DeliveryRequest.objects.filter(
                id=request_id, status=DeliveryRequestStatus.PENDING
            ).update(status=DeliveryRequestStatus.EXPIRED)
            if changed:
                expired.append((str(request_id), str(order_id)))
        return expired

    def live_for_courier(self, courier_id: str, now: datetime) -> List[DeliveryRequest]:
        return list(
            DeliveryRequest.objects.select_related("order", "order__shop")
            .filter(
                courier_id=courier_id,
                status=DeliveryRequestStatus.PENDING,
                expires_at__gt=now,
            )
            .order_by("expires_at")
        )
