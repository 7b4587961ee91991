"""Delivery DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
DTOs are immutable (``frozen=True``).
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from modules.orders.constants import COURIER_STATES


class AssignDeliveryDTO(BaseModel):
    """Manual assignment request from an admin."""

    model_config = ConfigDict(frozen=True)

    order_id: UUID
    partner_id: UUID


class DeliveryStatusUpdateDTO(BaseModel):
    """Courier status update; DELIVERED requires the verification code."""

    model_config = ConfigDict(frozen=True)

    status: str
    verification_code: Optional[str] = None

    @field_validator("status")
    @classmethod
    def status_must_be_courier_state(cls, v: str) -> str:
        value = v.strip().upper()
        if value not in COURIER_STATES:
            raise ValueError(
                f"Couriers may only set one of: {', '.join(COURIER_STATES)}."
            )
        return value


class LocationPingDTO(BaseModel):
    """One GPS sample from the courier app."""

    model_config = ConfigDict(frozen=True)

    latitude: float
    longitude: float
    speed: Optional[float] = Field(default=None, ge=0)
    heading: Optional[float] = Field(default=None, ge=0, le=360)
    accuracy: Optional[float] = Field(default=None, ge=0)


class RouteUpdateDTO(BaseModel):
    """Route computed by the courier app.

    ``eta_minutes`` may be omitted; it is then derived from ``distance_km``.
    """

    model_config = ConfigDict(frozen=True)

    route_polyline: str = ""
    distance_km: Optional[float] = Field(default=None, ge=0)
    eta_minutes: Optional[int] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def needs_distance_or_eta(self):
        if self.distance_km is None and self.eta_minutes is None:
            raise ValueError("Provide distance_km or eta_minutes.")
        return self
