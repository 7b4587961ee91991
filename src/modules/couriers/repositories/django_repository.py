"""Django ORM implementation of the Courier repository.

Counter updates use ``F()`` expressions through ``QuerySet.update`` so
they are applied by the database and never read-modify-write in Python.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db.models import F

from modules.couriers.models import Courier
from modules.couriers.repositories.interfaces import ICourierRepository

logger = structlog.get_logger(__name__)


class CourierDjangoRepository(ICourierRepository):
    """Concrete Courier repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[Courier]:
        try:
            return Courier.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_by_user_id(self, user_id: str) -> Optional[Courier]:
        return Courier.objects.filter(user_id=str(user_id)).first()

    def get_for_update(self, id: str) -> Optional[Courier]:
        try:
            return Courier.objects.select_for_update().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def save(self, entity: Courier) -> Courier:
        entity.save()
        return entity

    def list_available(self, city: str, fresh_since: datetime) -> List[Courier]:
        return list(
            Courier.objects.filter(
                is_online=True,
                is_verified=True,
                city__iexact=city.strip(),
                current_latitude__isnull=False,
                current_longitude__isnull=False,
                last_location_update__gte=fresh_since,
            )
        )

    def increment_earnings(self, courier_id: str, amount: Decimal) -> None:
        Courier.objects.filter(id=courier_id).update(
            total_earnings=F("total_earnings") + amount
        )
        logger.info(
            "courier.earnings_incremented",
            courier_id=str(courier_id),
            amount=str(amount),
        )

    def apply_rejection_penalty(self, courier_id: str, amount: Decimal) -> None:
        Courier.objects.filter(id=courier_id).update(
            rejection_count=F("rejection_count") + 1,
            penalty_amount=F("penalty_amount") + amount,
        )
        logger.info(
            "courier.penalty_applied",
            courier_id=str(courier_id),
            amount=str(amount),
        )

    def update_location(
        self,
        courier_id: str,
        latitude: float,
        longitude: float,
        at: datetime,
    ) -> None:
        Courier.objects.filter(id=courier_id).update(
            current_latitude=latitude,
            current_longitude=longitude,
            last_location_update=at,
            updated_at=at,
        )

    def set_online(self, courier_id: str, is_online: bool) -> None:
        Courier.objects.filter(id=courier_id).update(is_online=is_online)
