"""Commission rate management.

Rates are percentages of the delivery fee (couriers) or of the order
value (vendors).  Every change is logged as a ``CommissionRateRecord`` in
the same transaction as the update.

Courier rate resolution order: the courier's own rate, then the
``DELIVERY_PLATFORM_COMMISSION`` platform setting, then
``settings.DEFAULT_DELIVERY_COMMISSION_RATE``.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any, Optional

import structlog
from django.db import transaction

from modules.commissions.exceptions import InvalidCommissionRate
from modules.commissions.models import CommissionEntityType
from modules.couriers.exceptions import CourierNotFound
from modules.orders.exceptions import ShopNotFound

if TYPE_CHECKING:
    from modules.commissions.models import CommissionRateRecord
    from modules.commissions.repositories.interfaces import ICommissionRecordRepository
    from modules.core.repositories.interfaces import ISettingsRepository
    from modules.couriers.models import Courier
    from modules.couriers.repositories.interfaces import ICourierRepository
    from modules.orders.repositories.interfaces import IShopRepository

logger = structlog.get_logger(__name__)

PLATFORM_COMMISSION_KEY = "DELIVERY_PLATFORM_COMMISSION"


def normalize_rate(rate: Any) -> Decimal:
    """Parse *rate* as a two-decimal percentage in ``[0, 100]``."""
    try:
        value = Decimal(str(rate))
    except (InvalidOperation, ValueError) as exc:
        raise InvalidCommissionRate(f"Invalid commission rate {rate!r}.") from exc
    if not value.is_finite() or value < 0 or value > 100:
        raise InvalidCommissionRate("Commission rate must be between 0 and 100.")
    return value.quantize(Decimal("0.01"))


class CommissionService:
    """Application service for commission rates."""

    def __init__(
        self,
        record_repository: ICommissionRecordRepository,
        shop_repository: IShopRepository,
        courier_repository: ICourierRepository,
        settings_repository: ISettingsRepository,
        default_rate: Decimal,
    ) -> None:
        self._record_repo = record_repository
        self._shop_repo = shop_repository
        self._courier_repo = courier_repository
        self._settings_repo = settings_repository
        self._default_rate = Decimal(default_rate)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def platform_courier_rate(self) -> Decimal:
        return self._settings_repo.get_decimal(PLATFORM_COMMISSION_KEY, self._default_rate)

    def resolve_courier_rate(self, courier: Courier) -> Decimal:
        if courier.commission_rate is not None:
            return Decimal(courier.commission_rate)
        return self.platform_courier_rate()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def update_vendor_rate(
        self, shop_id: str, rate: Any, changed_by: str, reason: str = ""
    ) -> CommissionRateRecord:
        new_rate = normalize_rate(rate)
        shop = self._shop_repo.get_for_update(str(shop_id))
        if not shop:
            raise ShopNotFound(f"Shop {shop_id} not found.")

        old_rate = shop.commission_rate
        shop.commission_rate = new_rate
        self._shop_repo.save(shop)
        return self._record(
            CommissionEntityType.VENDOR, str(shop.id), old_rate, new_rate, changed_by, reason
        )

    @transaction.atomic
    def update_courier_rate(
        self, courier_id: str, rate: Any, changed_by: str, reason: str = ""
    ) -> CommissionRateRecord:
        new_rate = normalize_rate(rate)
        courier = self._courier_repo.get_for_update(str(courier_id))
        if not courier:
            raise CourierNotFound(f"Courier {courier_id} not found.")

        old_rate = courier.commission_rate
        courier.commission_rate = new_rate
        self._courier_repo.save(courier)
        return self._record(
            CommissionEntityType.COURIER,
            str(courier.id),
            old_rate,
            new_rate,
            changed_by,
            reason,
        )

    def _record(
        self,
        entity_type: str,
        entity_id: str,
        old_rate: Optional[Decimal],
        new_rate: Decimal,
        changed_by: str,
        reason: str,
    ) -> CommissionRateRecord:
        record = self._record_repo.create(
            {
                "entity_type": entity_type,
                "entity_id": entity_id,
                "old_rate": old_rate,
                "new_rate": new_rate,
                "changed_by": str(changed_by or ""),
                "reason": reason or "",
            }
        )
        logger.info(
            "commission.rate_changed",
            entity_type=entity_type,
            entity_id=entity_id,
            old_rate=None if old_rate is None else str(old_rate),
            new_rate=str(new_rate),
        )
        return record
