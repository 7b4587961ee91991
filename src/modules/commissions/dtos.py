"""Commission DTOs (Pydantic v2, immutable)."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class CommissionRateUpdateDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    rate: Decimal = Field(ge=0, le=100)
    reason: str = ""
