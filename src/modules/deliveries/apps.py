from django.apps import AppConfig


class DeliveriesConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.deliveries"
    label = "deliveries"
    verbose_name = "Deliveries"

    def ready(self) -> None:
        from modules.deliveries.handlers import (
            order_cancelled_handler,
            order_dispatchable_handler,
        )
        from modules.orders.events import OrderCancelled, OrderStatusChanged
        from shared.infrastructure.bus import event_bus

        event_bus.subscribe(OrderStatusChanged, order_dispatchable_handler)
        event_bus.subscribe(OrderCancelled, order_cancelled_handler)
