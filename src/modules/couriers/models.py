"""Courier (delivery partner) model.

Only the projection the dispatch core needs: availability flags, the
last reported position and the running earnings/penalty counters.
Counters are only ever changed through ``F()`` expressions so concurrent
settlements and rejections never lose an update.
"""

from __future__ import annotations

from decimal import Decimal

from django.db import models

from modules.core.models import BaseModel


class VehicleType(models.TextChoices):
    BICYCLE = "BICYCLE", "Bicycle"
    MOTORCYCLE = "MOTORCYCLE", "Motorcycle"
    SCOOTER = "SCOOTER", "Scooter"
    CAR = "CAR", "Car"


class Courier(BaseModel):
    """Delivery partner profile keyed by the external user reference."""

    user_id: models.CharField = models.CharField(max_length=64, unique=True)
    name: models.CharField = models.CharField(max_length=200, blank=True, default="")
    phone: models.CharField = models.CharField(max_length=20, blank=True, default="")
    is_online: models.BooleanField = models.BooleanField(default=False)
    is_verified: models.BooleanField = models.BooleanField(default=False)
    city: models.CharField = models.CharField(max_length=100, blank=True, default="")
    zone: models.CharField = models.CharField(max_length=100, blank=True, default="")
    vehicle_type: models.CharField = models.CharField(
        max_length=12,
        choices=VehicleType.choices,
        default=VehicleType.MOTORCYCLE,
    )
    vehicle_number: models.CharField = models.CharField(
        max_length=20, blank=True, default=""
    )
    current_latitude: models.FloatField = models.FloatField(null=True, blank=True)
    current_longitude: models.FloatField = models.FloatField(null=True, blank=True)
    last_location_update: models.DateTimeField = models.DateTimeField(
        null=True, blank=True
    )
    # ``None`` falls back to the platform default rate.
    commission_rate: models.DecimalField = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
    )
    total_earnings: models.DecimalField = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    rejection_count: models.PositiveIntegerField = models.PositiveIntegerField(
        default=0
    )
    penalty_amount: models.DecimalField = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
    )

    class Meta:
        db_table = "couriers"
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["is_online", "is_verified", "city"],
                name="couriers_availability_idx",
            ),
        ]

    @property
    def has_location(self) -> bool:
        return self.current_latitude is not None and self.current_longitude is not None

    def __str__(self) -> str:
        return f"{self.name or self.user_id} ({self.city})"
