"""Composition helpers for the commission service."""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings

from modules.commissions.repositories import CommissionRecordDjangoRepository
from modules.commissions.services import CommissionService
from modules.core.repositories.django_repository import PlatformSettingDjangoRepository
from modules.couriers.repositories import CourierDjangoRepository
from modules.orders.repositories import ShopDjangoRepository


def build_commission_service() -> CommissionService:
    return CommissionService(
        record_repository=CommissionRecordDjangoRepository(),
        shop_repository=ShopDjangoRepository(),
        courier_repository=CourierDjangoRepository(),
        settings_repository=PlatformSettingDjangoRepository(),
        default_rate=Decimal(str(settings.DEFAULT_DELIVERY_COMMISSION_RATE)),
    )
