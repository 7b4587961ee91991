"""Delivery, DeliveryRequest, and DeliveryLocation models.

Business rules implemented:
- At most one Delivery per Order: ``order`` is a ``OneToOneField``, so the
  database rejects a second insert even if two acceptances race.
- At most one ACCEPTED DeliveryRequest per Order (conditional unique
  constraint) and a unique ``(order, attempt_number)`` pair.
- Deliveries are never deleted (``PROTECT`` on both sides).
- Requests and locations are append-only audit data; the only update a
  request ever receives is its single response.
"""

from __future__ import annotations

from decimal import Decimal

from django.db import models
from django.db.models import Q

from modules.core.models import BaseModel
from modules.deliveries.constants import DeliveryRequestStatus


class Delivery(BaseModel):
    """The assignment of one order to one courier, with tracking and settlement."""

    order: models.OneToOneField = models.OneToOneField(
        "orders.Order",
        on_delete=models.PROTECT,
        related_name="delivery",
    )
    courier: models.ForeignKey = models.ForeignKey(
        "couriers.Courier",
        on_delete=models.PROTECT,
        related_name="deliveries",
    )
    delivery_fee: models.DecimalField = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    tip: models.DecimalField = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    commission_amount: models.DecimalField = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    partner_earnings: models.DecimalField = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    verification_code: models.CharField = models.CharField(max_length=6)
    pickup_time: models.DateTimeField = models.DateTimeField(null=True, blank=True)
    delivery_time: models.DateTimeField = models.DateTimeField(null=True, blank=True)
    settled_at: models.DateTimeField = models.DateTimeField(null=True, blank=True)

    # Live tracking
    is_tracking: models.BooleanField = models.BooleanField(default=False)
    tracking_started_at: models.DateTimeField = models.DateTimeField(
        null=True, blank=True
    )
    current_latitude: models.FloatField = models.FloatField(null=True, blank=True)
    current_longitude: models.FloatField = models.FloatField(null=True, blank=True)
    last_location_update: models.DateTimeField = models.DateTimeField(
        null=True, blank=True
    )
    route_polyline: models.TextField = models.TextField(blank=True, default="")
    distance_km: models.FloatField = models.FloatField(null=True, blank=True)
    eta_minutes: models.PositiveIntegerField = models.PositiveIntegerField(
        null=True, blank=True
    )
    estimated_delivery_at: models.DateTimeField = models.DateTimeField(
        null=True, blank=True
    )

    class Meta:
        db_table = "deliveries"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["courier", "-created_at"], name="deliveries_courier_idx"),
        ]

    @property
    def is_settled(self) -> bool:
        return self.settled_at is not None

    def __str__(self) -> str:
        return f"Delivery {self.id} (order {self.order_id})"


class DeliveryRequest(BaseModel):
    """One offer of an order to one courier.

    ``attempt_number`` grows by one per offer for the same order; broadcast
    offers each take their own attempt number.  A request superseded by
    someone else's acceptance is REJECTED with ``responded_at`` left empty,
    which distinguishes it from a courier's explicit rejection.
    """

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.PROTECT,
        related_name="delivery_requests",
    )
    courier: models.ForeignKey = models.ForeignKey(
        "couriers.Courier",
        on_delete=models.PROTECT,
        related_name="delivery_requests",
    )
    status: models.CharField = models.CharField(
        max_length=10,
        choices=DeliveryRequestStatus.choices,
        default=DeliveryRequestStatus.PENDING,
    )
    expires_at: models.DateTimeField = models.DateTimeField()
    is_exclusive: models.BooleanField = models.BooleanField(default=True)
    attempt_number: models.PositiveIntegerField = models.PositiveIntegerField()
    responded_at: models.DateTimeField = models.DateTimeField(null=True, blank=True)
    distance_km: models.FloatField = models.FloatField(null=True, blank=True)
    penalty_applied: models.BooleanField = models.BooleanField(default=False)
    penalty_amount: models.DecimalField = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
    )

    class Meta:
        db_table = "delivery_requests"
        ordering = ["order", "attempt_number"]
        constraints = [
            models.UniqueConstraint(
                fields=["order", "attempt_number"],
                name="delivery_requests_order_attempt_uniq",
            ),
            models.UniqueConstraint(
                fields=["order"],
                condition=Q(status=DeliveryRequestStatus.ACCEPTED),
                name="delivery_requests_single_accepted",
            ),
        ]
        indexes = [
            models.Index(
                fields=["status", "expires_at"],
                name="delivery_requests_sweep_idx",
            ),
            models.Index(
                fields=["courier", "status"],
                name="delivery_requests_courier_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"Offer #{self.attempt_number} for {self.order_id} [{self.status}]"


class DeliveryLocation(BaseModel):
    """Append-only GPS breadcrumb for a delivery."""

    delivery: models.ForeignKey = models.ForeignKey(
        "deliveries.Delivery",
        on_delete=models.CASCADE,
        related_name="locations",
    )
    latitude: models.FloatField = models.FloatField()
    longitude: models.FloatField = models.FloatField()
    speed: models.FloatField = models.FloatField(null=True, blank=True)
    heading: models.FloatField = models.FloatField(null=True, blank=True)
    accuracy: models.FloatField = models.FloatField(null=True, blank=True)
    recorded_at: models.DateTimeField = models.DateTimeField()

    class Meta:
        db_table = "delivery_locations"
        ordering = ["-recorded_at"]
        indexes = [
            models.Index(
                fields=["delivery", "-recorded_at"],
                name="delivery_locations_recent_idx",
            ),
        ]
