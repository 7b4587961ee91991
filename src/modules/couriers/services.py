"""Courier self-service use cases: availability and position reports."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable

import structlog
from django.utils import timezone

from modules.couriers.exceptions import CourierNotFound
from modules.deliveries.geo import validate_coordinates

if TYPE_CHECKING:
    from modules.couriers.dtos import CourierAvailabilityDTO, CourierLocationDTO
    from modules.couriers.models import Courier
    from modules.couriers.repositories.interfaces import ICourierRepository

logger = structlog.get_logger(__name__)


class CourierService:
    """Application service for the authenticated courier's own profile."""

    def __init__(
        self,
        courier_repository: ICourierRepository,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self._courier_repo = courier_repository
        self._clock = clock

    def get_profile(self, user: Any) -> Courier:
        """Raises ``CourierNotFound`` when the user has no courier profile."""
        courier = self._courier_repo.get_by_user_id(str(user.pk))
        if not courier:
            raise CourierNotFound("No courier profile for this user.")
        return courier

    def set_online(self, user: Any, dto: CourierAvailabilityDTO) -> Courier:
        courier = self.get_profile(user)
        self._courier_repo.set_online(str(courier.id), dto.is_online)
        courier.is_online = dto.is_online
        logger.info(
            "courier.availability_changed",
            courier_id=str(courier.id),
            is_online=dto.is_online,
        )
        return courier

    def update_location(self, user: Any, dto: CourierLocationDTO) -> Courier:
        """Store the courier's position; stale positions exclude them from matching."""
        validate_coordinates(dto.latitude, dto.longitude)
        courier = self.get_profile(user)
        now = self._clock()
        self._courier_repo.update_location(
            str(courier.id), dto.latitude, dto.longitude, now
        )
        courier.current_latitude = dto.latitude
        courier.current_longitude = dto.longitude
        courier.last_location_update = now
        return courier
