"""Event handlers tying the order lifecycle to dispatch.

Handlers run inside the transaction that changed the order.  Dispatch is
queued with ``transaction.on_commit`` so the task never sees an order
status that was rolled back.
"""

from __future__ import annotations

import structlog
from django.conf import settings
from django.db import transaction

from modules.deliveries.repositories import (
    DeliveryDjangoRepository,
    DeliveryRequestDjangoRepository,
)
from modules.orders.constants import OrderStatus
from modules.orders.events import OrderCancelled, OrderStatusChanged
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class OrderDispatchableHandler(IEventHandler[OrderStatusChanged]):
    """Queue matching once an order becomes READY (or ACCEPTED, if enabled)."""

    def handle(self, event: OrderStatusChanged) -> None:
        dispatchable = {OrderStatus.READY}
        if settings.DISPATCH_ALLOW_ACCEPTED_ORDERS:
            dispatchable.add(OrderStatus.ACCEPTED)
        if event.new_status not in dispatchable:
            return

        from modules.deliveries.tasks import dispatch_order

        order_id = str(event.aggregate_id)
        transaction.on_commit(lambda: dispatch_order.delay(order_id))
        logger.info("dispatch.queued", order_id=order_id, status=event.new_status)


class OrderCancelledHandler(IEventHandler[OrderCancelled]):
    """Close open offers and stop tracking for a cancelled order."""

    def __init__(self) -> None:
        self._requests = DeliveryRequestDjangoRepository()
        self._deliveries = DeliveryDjangoRepository()

    def handle(self, event: OrderCancelled) -> None:
        order_id = str(event.aggregate_id)
        superseded = self._requests.supersede_pending(order_id, None)
        delivery = self._deliveries.get_by_order_id(order_id)
        if delivery and delivery.is_tracking:
            self._deliveries.update_fields(str(delivery.id), is_tracking=False)
        logger.info(
            "dispatch.order_cancelled",
            order_id=order_id,
            superseded_offers=superseded,
            had_delivery=delivery is not None,
        )


order_dispatchable_handler = OrderDispatchableHandler()
order_cancelled_handler = OrderCancelledHandler()
