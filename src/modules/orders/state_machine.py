"""Order lifecycle state machine.

Validates and applies order status transitions.  A transition is a single
atomic write: the status update, the history row, the outbox rows and the
in-process domain event handlers all commit or roll back together.

Callers are expected to pass an order obtained through
``IOrderRepository.get_for_update`` inside their own transaction so that
the validated status cannot change before the write.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

import structlog
from django.db import transaction

from modules.orders.constants import (
    CANCEL_PERMISSIONS,
    EARLY_DISPATCH_EDGE,
    EDGE_PERMISSIONS,
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    ActorRole,
    OrderStatus,
)
from modules.orders.events import OrderCancelled, OrderStatusChanged
from modules.orders.exceptions import InvalidOrderStatus, TransitionForbidden

if TYPE_CHECKING:
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository
    from shared.domain.bus import IEventBus

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Actor:
    """Who is driving a transition: a role plus the user reference, if any."""

    role: str
    user_id: str = ""

    @classmethod
    def system(cls) -> "Actor":
        return cls(role=ActorRole.SYSTEM)


SYSTEM_ACTOR = Actor.system()


class OrderStateMachine:
    """Applies the lifecycle graph and the edge permission table."""

    def __init__(
        self,
        order_repository: IOrderRepository,
        event_bus: IEventBus,
        allow_early_dispatch: bool = False,
    ) -> None:
        self._order_repo = order_repository
        self._event_bus = event_bus
        self._allow_early_dispatch = allow_early_dispatch

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def successors(self, status: str) -> set[str]:
        """Forward successors of *status*, plus CANCELLED when non-terminal."""
        allowed = set(VALID_TRANSITIONS.get(status, set()))
        if self._allow_early_dispatch and status == EARLY_DISPATCH_EDGE[0]:
            allowed.add(EARLY_DISPATCH_EDGE[1])
        if status not in TERMINAL_STATES:
            allowed.add(OrderStatus.CANCELLED)
        return allowed

    def can_transition(self, status: str, target: str) -> bool:
        return target in self.successors(status)

    def check(
        self,
        order: Order,
        target: str,
        actor: Actor,
        assigned_courier_id: Optional[str] = None,
    ) -> None:
        """Raise unless *actor* may move *order* to *target* right now.

        ``assigned_courier_id`` is the user reference of the courier holding
        the order's delivery; courier edges are only open to that courier.

        Raises:
            InvalidOrderStatus: *target* is not a successor of the status.
            TransitionForbidden: the actor's role may not drive the edge.
        """
        if not self.can_transition(order.status, target):
            raise InvalidOrderStatus(
                f"Cannot transition from {order.status} to {target}."
            )

        if target == OrderStatus.CANCELLED:
            if not self._may_cancel(order.status, actor):
                raise TransitionForbidden(
                    f"{actor.role} may not cancel an order in status {order.status}."
                )
            return

        roles = EDGE_PERMISSIONS.get((order.status, target), set())
        if actor.role not in roles:
            raise TransitionForbidden(
                f"{actor.role} may not move an order from {order.status} to {target}."
            )
        if actor.role == ActorRole.COURIER and (
            not assigned_courier_id or str(assigned_courier_id) != str(actor.user_id)
        ):
            raise TransitionForbidden("Only the assigned courier may update this order.")

    @staticmethod
    def _may_cancel(status: str, actor: Actor) -> bool:
        if actor.role in (ActorRole.ADMIN, ActorRole.SYSTEM):
            return True
        return status in CANCEL_PERMISSIONS.get(actor.role, set())

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def transition(
        self,
        order: Order,
        target: str,
        actor: Actor,
        notes: str = "",
        assigned_courier_id: Optional[str] = None,
    ) -> Order:
        """Validate and apply a transition, recording history and events."""
        self.check(order, target, actor, assigned_courier_id=assigned_courier_id)

        old_status = order.status
        order.status = target
        if target == OrderStatus.CANCELLED:
            order.add_domain_event(
                OrderCancelled(
                    aggregate_id=order.id,
                    old_status=old_status,
                    actor_role=actor.role,
                )
            )
        else:
            order.add_domain_event(
                OrderStatusChanged(
                    aggregate_id=order.id,
                    old_status=old_status,
                    new_status=target,
                    actor_role=actor.role,
                )
            )

        events = order.domain_events
        self._order_repo.save(order)
        self._order_repo.add_history(
            order_id=order.id,
            old_status=old_status,
            new_status=target,
            actor_role=actor.role,
            actor_id=actor.user_id,
            notes=notes,
        )

        logger.info(
            "order.status_updated",
            order_id=str(order.id),
            old_status=old_status,
            new_status=target,
            actor_role=actor.role,
        )
        for event in events:
            self._event_bus.publish(event)
        return order
