"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF Serializers)
and the Service layer.  DTOs are immutable (``frozen=True``).
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, field_validator

from modules.orders.constants import OrderStatus


class OrderStatusUpdateDTO(BaseModel):
    """Immutable DTO for a vendor/admin status update request."""

    model_config = ConfigDict(frozen=True)

    status: str
    notes: str = ""

    @field_validator("status")
    @classmethod
    def status_must_be_known(cls, v: str) -> str:
        value = v.strip().upper()
        if value not in OrderStatus.values:
            raise ValueError(f"Unknown order status {v!r}.")
        return value
