"""Commission history repository interface."""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict

from django.db.models import QuerySet

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.commissions.models import CommissionRateRecord


class ICommissionRecordRepository(IRepository["CommissionRateRecord"]):
    @abstractmethod
    def create(self, data: Dict[str, Any]) -> CommissionRateRecord:
        """Append a rate change record."""

    @abstractmethod
    def queryset(self) -> QuerySet:
        """All records, newest first; the API narrows it with filters."""
