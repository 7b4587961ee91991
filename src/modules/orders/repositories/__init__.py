from modules.orders.repositories.django_repository import (
    OrderDjangoRepository,
    ShopDjangoRepository,
)
from modules.orders.repositories.interfaces import IOrderRepository, IShopRepository

__all__ = [
    "IOrderRepository",
    "IShopRepository",
    "OrderDjangoRepository",
    "ShopDjangoRepository",
]
