"""Django ORM implementation of the commission history repository."""

from __future__ import annotations

from typing import Any, Dict, Optional

from django.core.exceptions import ValidationError
from django.db.models import QuerySet

from modules.commissions.models import CommissionRateRecord
from modules.commissions.repositories.interfaces import ICommissionRecordRepository


class CommissionRecordDjangoRepository(ICommissionRecordRepository):
    def get_by_id(self, id: str) -> Optional[CommissionRateRecord]:
        try:
            return CommissionRateRecord.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def save(self, entity: CommissionRateRecord) -> CommissionRateRecord:
        entity.save()
        return entity

    def create(self, data: Dict[str, Any]) -> CommissionRateRecord:
        return CommissionRateRecord.objects.create(**data)

    def queryset(self) -> QuerySet:
        return CommissionRateRecord.objects.order_by("-created_at", "-id")
