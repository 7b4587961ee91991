"""Courier DTOs for the Service Layer (Pydantic v2, immutable)."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class CourierLocationDTO(BaseModel):
    """A position report from the courier app."""

    model_config = ConfigDict(frozen=True)

    latitude: float
    longitude: float


class CourierAvailabilityDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_online: bool
