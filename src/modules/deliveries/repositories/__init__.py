from modules.deliveries.repositories.django_repository import (
    DeliveryDjangoRepository,
    DeliveryRequestDjangoRepository,
)
from modules.deliveries.repositories.interfaces import (
    IDeliveryRepository,
    IDeliveryRequestRepository,
)

__all__ = [
    "DeliveryDjangoRepository",
    "DeliveryRequestDjangoRepository",
    "IDeliveryRepository",
    "IDeliveryRequestRepository",
]
