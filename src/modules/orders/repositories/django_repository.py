"""Django ORM implementation of the Order and Shop repositories.

Concurrency control on status updates uses ``select_for_update()``:
callers lock the order row before validating a transition and keep the
lock until their transaction commits.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction

from modules.core.models import OutboxEvent
from modules.core.notifications import serialize_payload
from modules.orders.models import Order, OrderStatusHistory, Shop
from modules.orders.repositories.interfaces import IOrderRepository, IShopRepository

logger = structlog.get_logger(__name__)

ORDERS_TOPIC = "orders"


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with eager-loaded relations.

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return (
                Order.objects.select_related("shop")
                .prefetch_related("status_history")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE).

        Only the order row is locked (``of=("self",)``) so that concurrent
        dispatches for other orders of the same shop do not serialize.
        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return (
                Order.objects.select_for_update(of=("self",))
                .select_related("shop")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    # ------------------------------------------------------------------
    # Save (IRepository contract)
    # ------------------------------------------------------------------

    @transaction.atomic
    def save(self, entity: Order) -> Order:
        """Persist an order and flush its pending domain events to the outbox."""
        entity.save()

        events = entity.domain_events
        for event in events:
            OutboxEvent.objects.create(
                event_type=event.event_name,
                aggregate_id=str(event.aggregate_id),
                payload=serialize_payload(event.to_payload()),
                topic=ORDERS_TOPIC,
            )
        entity.clear_domain_events()

        logger.info("order.saved", order_id=str(entity.id), event_count=len(events))
        return entity

    # ------------------------------------------------------------------
    # Order-specific writes
    # ------------------------------------------------------------------

    def add_history(
        self,
        order_id: UUID,
        old_status: Optional[str],
        new_status: str,
        actor_role: str,
        actor_id: str = "",
        notes: str = "",
    ) -> OrderStatusHistory:
        """Record a status change in the order's audit trail."""
        history = OrderStatusHistory.objects.create(
            order_id=order_id,
            old_status=old_status,
            new_status=new_status,
            actor_role=actor_role,
            actor_id=actor_id or "",
            notes=notes,
        )
        logger.info(
            "order.history_added",
            order_id=str(order_id),
            old_status=old_status,
            new_status=new_status,
            actor_role=actor_role,
        )
        return history

    def record_settlement(
        self,
        order_id: UUID,
        commission_amount: Decimal,
        courier_earnings: Decimal,
    ) -> None:
        Order.objects.filter(id=order_id).update(
            commission_amount=commission_amount,
            courier_earnings=courier_earnings,
        )


class ShopDjangoRepository(IShopRepository):
    """Concrete Shop repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[Shop]:
        try:
            return Shop.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Shop]:
        try:
            return Shop.objects.select_for_update().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def save(self, entity: Shop) -> Shop:
        entity.save()
        return entity
