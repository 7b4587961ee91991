"""Order update fan-out to the customer and the shop owner."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

from modules.orders.constants import OrderStatus

if TYPE_CHECKING:
    from modules.orders.models import Order
    from shared.domain.notifications import INotificationPublisher

ORDER_UPDATE_EVENT = "order_update"

STATUS_MESSAGES: dict[str, str] = {
    OrderStatus.ACCEPTED: "Your order has been accepted by the shop.",
    OrderStatus.READY: "Your order is ready for pickup.",
    OrderStatus.ASSIGNED: "A delivery partner has been assigned to your order.",
    OrderStatus.EN_ROUTE_TO_PICKUP: "Your delivery partner is on the way to the shop.",
    OrderStatus.PICKED_UP: "Your order has been picked up.",
    OrderStatus.OUT_FOR_DELIVERY: "Your order is out for delivery.",
    OrderStatus.DELIVERED: "Your order has been delivered.",
    OrderStatus.CANCELLED: "Your order has been cancelled.",
}


class OrderNotifier:
    """Publishes ``order_update`` to everyone following an order."""

    def __init__(self, publisher: INotificationPublisher) -> None:
        self._publisher = publisher

    def order_updated(
        self,
        order: Order,
        message: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
        customer_extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Notify the customer and the shop owner.

        ``customer_extra`` is merged into the customer's copy only (e.g. the
        delivery verification code, which the vendor must not see).
        """
        body = {
            "order_id": str(order.id),
            "status": order.status,
            "message": message or STATUS_MESSAGES.get(order.status, ""),
            "payload": dict(extra or {}),
        }
        customer_body = {**body, "payload": {**body["payload"], **(customer_extra or {})}}
        self._publisher.publish(order.customer_id, ORDER_UPDATE_EVENT, customer_body)
        self._publisher.publish(order.shop.owner_id, ORDER_UPDATE_EVENT, body)
