"""Dispatch tuning knobs, snapshotted from Django settings."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from django.conf import settings


@dataclass(frozen=True)
class DispatchConfig:
    exclusive_offer_ttl_seconds: int = 15
    max_exclusive_attempts: int = 3
    broadcast_offer_ttl_seconds: int = 300
    location_staleness_seconds: int = 300
    max_search_radius_km: float = 10.0
    allow_accepted_orders: bool = False
    rejection_penalty_amount: Decimal = Decimal("10.00")
    average_speed_kmh: float = 30.0

    @classmethod
    def from_settings(cls) -> "DispatchConfig":
        return cls(
            exclusive_offer_ttl_seconds=settings.DISPATCH_EXCLUSIVE_OFFER_TTL_SECONDS,
            max_exclusive_attempts=settings.DISPATCH_MAX_EXCLUSIVE_ATTEMPTS,
            broadcast_offer_ttl_seconds=settings.DISPATCH_BROADCAST_OFFER_TTL_SECONDS,
            location_staleness_seconds=settings.DISPATCH_LOCATION_STALENESS_SECONDS,
            max_search_radius_km=float(settings.DISPATCH_MAX_SEARCH_RADIUS_KM),
            allow_accepted_orders=settings.DISPATCH_ALLOW_ACCEPTED_ORDERS,
            rejection_penalty_amount=Decimal(
                str(settings.DISPATCH_REJECTION_PENALTY_AMOUNT)
            ),
            average_speed_kmh=float(settings.DELIVERY_AVERAGE_SPEED_KMH),
        )
