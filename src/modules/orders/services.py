"""Order service layer (Use Cases).

Orchestrates the vendor/customer/admin side of the lifecycle: reading an
order, vendor-driven status updates and cancellation.  Courier-driven
updates live in ``modules.deliveries.services`` because they carry
verification and settlement.

All write operations are atomic: the service defines the unit-of-work
boundary and locks the order row before validating a transition.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from django.db import transaction

from modules.orders.constants import ActorRole, OrderStatus, PaymentStatus
from modules.orders.exceptions import OrderNotFound, TransitionForbidden
from modules.orders.state_machine import Actor

if TYPE_CHECKING:
    from modules.orders.models import Order
    from modules.orders.notifications import OrderNotifier
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.orders.state_machine import OrderStateMachine

logger = structlog.get_logger(__name__)


def resolve_actor(user: Any, order: Order) -> Actor:
    """Map an authenticated user to the role they hold on *order*.

    Staff users act as ADMIN; the shop owner as VENDOR; the customer as
    CUSTOMER.  Anyone else has no standing on the order.
    """
    user_id = str(user.pk)
    if getattr(user, "is_staff", False):
        return Actor(role=ActorRole.ADMIN, user_id=user_id)
    if user_id == str(order.shop.owner_id):
        return Actor(role=ActorRole.VENDOR, user_id=user_id)
    if user_id == str(order.customer_id):
        return Actor(role=ActorRole.CUSTOMER, user_id=user_id)
    raise TransitionForbidden("You have no access to this order.")


class OrderService:
    """Application service for Order use-cases.

    Receives its collaborators via constructor injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        state_machine: OrderStateMachine,
        notifier: OrderNotifier,
    ) -> None:
        self._order_repo = order_repository
        self._state_machine = state_machine
        self._notifier = notifier

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: str) -> Order:
        """Retrieve a single order by ID.

        Raises:
            OrderNotFound: if the order does not exist.
        """
        order = self._order_repo.get_by_id(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def get_order_for(self, order_id: str, user: Any) -> Order:
        """Retrieve an order the user has a role on."""
        order = self.get_order(order_id)
        resolve_actor(user, order)
        return order

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def update_status(
        self,
        order_id: str,
        new_status: str,
        user: Any,
        notes: str = "",
    ) -> Order:
        """Apply a vendor/admin transition such as ACCEPTED or READY.

        Raises:
            OrderNotFound: order does not exist.
            InvalidOrderStatus: transition is not allowed.
            TransitionForbidden: the user's role may not drive the edge.
        """
        order = self._order_repo.get_for_update(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")

        actor = resolve_actor(user, order)
        log = logger.bind(
            order_id=str(order_id),
            current_status=order.status,
            new_status=new_status,
            actor_role=actor.role,
        )
        if new_status == OrderStatus.CANCELLED:
            return self._cancel_locked(order, actor, notes)

        self._state_machine.transition(order, new_status, actor, notes=notes)
        self._notifier.order_updated(order)
        log.info("order.status_changed_by_user")
        return order

    @transaction.atomic
    def cancel_order(self, order_id: str, user: Any, notes: str = "") -> Order:
        """Cancel an order from a non-terminal status.

        Pending offers are superseded by the ``OrderCancelled`` handler
        inside the same transaction.

        Raises:
            OrderNotFound: order does not exist.
            InvalidOrderStatus: the order is already terminal.
            TransitionForbidden: the user's role may not cancel now.
        """
        order = self._order_repo.get_for_update(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return self._cancel_locked(order, resolve_actor(user, order), notes)

    def _cancel_locked(self, order: Order, actor: Actor, notes: str) -> Order:
        # Validate first so a rejected cancel leaves payment untouched.
        self._state_machine.check(order, OrderStatus.CANCELLED, actor)
        if order.payment_status == PaymentStatus.SUCCESS:
            order.payment_status = PaymentStatus.REFUNDED
        self._state_machine.transition(
            order,
            OrderStatus.CANCELLED,
            actor,
            notes=notes or "Order cancelled",
        )
        self._notifier.order_updated(order)
        logger.info("order.cancelled", order_id=str(order.id), actor_role=actor.role)
        return order
