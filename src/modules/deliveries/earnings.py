"""Commission split and courier earnings.

The platform takes ``rate`` percent of the delivery fee; the courier keeps
the remainder plus the whole tip::

    commission = round2(fee * rate / 100)
    earnings   = round2((fee - commission) + tip)

so ``commission + earnings - tip == fee`` always holds.  All arithmetic is
``Decimal`` with ROUND_HALF_UP to the cent.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Callable

import structlog
from django.db import transaction
from django.utils import timezone

from modules.deliveries.exceptions import DeliveryNotFound

if TYPE_CHECKING:
    from modules.couriers.repositories.interfaces import ICourierRepository
    from modules.deliveries.models import Delivery
    from modules.deliveries.repositories.interfaces import IDeliveryRepository
    from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)

CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def round2(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class Settlement:
    commission_amount: Decimal
    partner_earnings: Decimal


def compute_settlement(fee: Decimal, tip: Decimal, rate_percent: Decimal) -> Settlement:
    """Split *fee* at *rate_percent* and add *tip* to the courier's share."""
    fee = Decimal(fee)
    tip = Decimal(tip)
    rate = Decimal(rate_percent)
    if fee < 0 or tip < 0:
        raise ValueError("Fee and tip must not be negative.")
    if not Decimal("0") <= rate <= HUNDRED:
        raise ValueError("Commission rate must be between 0 and 100.")

    commission = round2(fee * rate / HUNDRED)
    earnings = round2((fee - commission) + tip)
    return Settlement(commission_amount=commission, partner_earnings=earnings)


class EarningsCalculator:
    """Settles a delivered order exactly once."""

    def __init__(
        self,
        delivery_repository: IDeliveryRepository,
        courier_repository: ICourierRepository,
        order_repository: IOrderRepository,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self._delivery_repo = delivery_repository
        self._courier_repo = courier_repository
        self._order_repo = order_repository
        self._clock = clock

    @transaction.atomic
    def settle(self, delivery: Delivery, commission_rate_percent: Decimal) -> Settlement:
        """Store the split and credit the courier.

        The delivery row is locked first, so two concurrent calls credit
        the courier once: the second sees ``settled_at`` and returns the
        stored settlement unchanged.
        """
        locked = self._delivery_repo.get_for_update(str(delivery.id))
        if not locked:
            raise DeliveryNotFound(f"Delivery {delivery.id} not found.")

        log = logger.bind(delivery_id=str(locked.id), order_id=str(locked.order_id))
        if locked.settled_at is not None:
            log.info("delivery.settlement_skipped")
            return Settlement(
                commission_amount=locked.commission_amount,
                partner_earnings=locked.partner_earnings,
            )

        settlement = compute_settlement(
            locked.delivery_fee, locked.tip, commission_rate_percent
        )
        settled_at = self._clock()
        self._delivery_repo.record_settlement(
            str(locked.id),
            settlement.commission_amount,
            settlement.partner_earnings,
            settled_at,
        )
        self._courier_repo.increment_earnings(
            str(locked.courier_id), settlement.partner_earnings
        )
        self._order_repo.record_settlement(
            locked.order_id,
            settlement.commission_amount,
            settlement.partner_earnings,
        )

        delivery.commission_amount = settlement.commission_amount
        delivery.partner_earnings = settlement.partner_earnings
        delivery.settled_at = settled_at
        log.info(
            "delivery.settled",
            commission_amount=str(settlement.commission_amount),
            partner_earnings=str(settlement.partner_earnings),
            rate=str(commission_rate_percent),
        )
        return settlement
