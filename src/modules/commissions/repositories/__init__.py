from modules.commissions.repositories.django_repository import (
    CommissionRecordDjangoRepository,
)
from modules.commissions.repositories.interfaces import ICommissionRecordRepository

__all__ = ["CommissionRecordDjangoRepository", "ICommissionRecordRepository"]
