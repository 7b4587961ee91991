"""Order repository interface.

Extends ``IRepository[Order]`` with the methods required by the lifecycle:
row locking, status history and settlement bookkeeping.

The Service Layer and the state machine depend exclusively on this
contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from decimal import Decimal
from typing import TYPE_CHECKING, Optional
from uuid import UUID

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.orders.models import Order, OrderStatusHistory, Shop


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root."""

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with its shop and status history."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order holding a row-level lock until commit."""

    @abstractmethod
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

    @abstractmethod
    def record_settlement(
        self,
        order_id: UUID,
        commission_amount: Decimal,
        courier_earnings: Decimal,
    ) -> None:
        """Store the settled commission split on the order."""


class IShopRepository(IRepository["Shop"]):
    """Repository contract for the shop projection."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Shop]:
        """Retrieve a shop holding a row-level lock until commit."""
