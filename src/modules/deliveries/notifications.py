"""Courier-facing notifications: offers and confirmed assignments."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict

from modules.deliveries.constants import DELIVERY_REQUEST_EVENT, NEW_DELIVERY_EVENT

if TYPE_CHECKING:
    from modules.deliveries.models import Delivery, DeliveryRequest
    from modules.orders.models import Order
    from shared.domain.notifications import INotificationPublisher


def _pickup(order: Order) -> Dict[str, Any]:
    shop = order.shop
    return {
        "shop_name": shop.name,
        "address": shop.address,
        "latitude": shop.latitude,
        "longitude": shop.longitude,
    }


class DeliveryNotifier:
    def __init__(self, publisher: INotificationPublisher) -> None:
        self._publisher = publisher

    def offer_made(self, request: DeliveryRequest) -> None:
        order = request.order
        self._publisher.publish(
            request.courier.user_id,
            DELIVERY_REQUEST_EVENT,
            {
                "request_id": str(request.id),
                "order_id": str(order.id),
                "order_number": order.order_number,
                "pickup_location": _pickup(order),
                "delivery_fee": order.delivery_fee,
                "tip": order.tip,
                "distance_km": request.distance_km,
                "expires_at": request.expires_at,
                "is_exclusive": request.is_exclusive,
                "attempt_number": request.attempt_number,
            },
        )

    def delivery_assigned(self, delivery: Delivery) -> None:
        order = delivery.order
        self._publisher.publish(
            delivery.courier.user_id,
            NEW_DELIVERY_EVENT,
            {
                "delivery_id": str(delivery.id),
                "order_id": str(order.id),
                "order_number": order.order_number,
                "pickup_location": _pickup(order),
                "delivery_fee": delivery.delivery_fee,
                "tip": delivery.tip,
            },
        )
