"""Commission rate change log."""

from __future__ import annotations

from django.db import models

from modules.core.models import BaseModel


class CommissionEntityType(models.TextChoices):
    VENDOR = "VENDOR", "Vendor"
    COURIER = "COURIER", "Courier"


class CommissionRateRecord(BaseModel):
    """Append-only record of one commission rate change.

    ``entity_id`` is the shop id for VENDOR records and the courier id for
    COURIER records.  ``old_rate`` is null when the entity had no explicit
    rate before (couriers falling back to the platform default).
    """

    entity_type: models.CharField = models.CharField(
        max_length=10, choices=CommissionEntityType.choices
    )
    entity_id: models.CharField = models.CharField(max_length=64)
    old_rate: models.DecimalField = models.DecimalField(
        max_digits=5, decimal_places=2, null=True, blank=True
    )
    new_rate: models.DecimalField = models.DecimalField(max_digits=5, decimal_places=2)
    changed_by: models.CharField = models.CharField(max_length=64, blank=True, default="")
    reason: models.TextField = models.TextField(blank=True, default="")

    class Meta:
        db_table = "commission_rate_records"
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["entity_type", "entity_id", "-created_at"],
                name="commission_entity_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.entity_type} {self.entity_id}: {self.old_rate} -> {self.new_rate}"
