"""Delivery and DeliveryRequest repository interfaces.

The ledger, the matcher and the delivery services depend exclusively on
these contracts (DIP); the Django ORM implementation lives beside them.
"""

from __future__ import annotations

from abc import abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Set, Tuple

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.deliveries.models import Delivery, DeliveryLocation, DeliveryRequest


class IDeliveryRepository(IRepository["Delivery"]):
    """Repository contract for deliveries and their GPS log."""

    @abstractmethod
    def get_by_order_id(self, order_id: str) -> Optional[Delivery]:
        """Retrieve the delivery of an order, if one was created."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Delivery]:
        """Retrieve a delivery holding a row-level lock until commit."""

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Delivery:
        """Insert a delivery.

        Raises ``django.db.IntegrityError`` when the order already has one;
        callers run this inside a savepoint.
        """

    @abstractmethod
    def busy_courier_ids(self, courier_ids: Iterable[str]) -> Set[str]:
        """Subset of *courier_ids* currently holding an active delivery."""

    @abstractmethod
    def list_for_courier(self, courier_id: str, active: bool) -> List[Delivery]:
        """Courier's deliveries, either in progress or finished."""

    @abstractmethod
    def update_fields(self, delivery_id: str, **fields: Any) -> int:
        """Write *fields* with a single UPDATE (last write wins)."""

    @abstractmethod
    def add_location(self, delivery_id: str, data: Dict[str, Any]) -> DeliveryLocation:
        """Append a breadcrumb to the GPS log."""

    @abstractmethod
    def location_history(self, delivery_id: str, limit: int) -> List[DeliveryLocation]:
        """Most recent breadcrumbs first."""

    @abstractmethod
    def record_settlement(
        self,
        delivery_id: str,
        commission_amount: Decimal,
        partner_earnings: Decimal,
        settled_at: datetime,
    ) -> None:
        """Store the computed split and mark the delivery settled."""


class IDeliveryRequestRepository(IRepository["DeliveryRequest"]):
    """Repository contract for the offer ledger."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[DeliveryRequest]:
        """Retrieve a request holding a row-level lock until commit."""

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> DeliveryRequest:
        """Insert a new offer."""

    @abstractmethod
    def max_attempt_number(self, order_id: str) -> int:
        """Highest attempt number recorded for the order, 0 if none."""

    @abstractmethod
    def list_for_order(self, order_id: str) -> List[DeliveryRequest]:
        """All requests of an order in attempt order."""

    @abstractmethod
    def offered_courier_ids(self, order_id: str) -> Set[str]:
        """Couriers that already received an offer for the order."""

    @abstractmethod
    def count_exclusive(self, order_id: str) -> int:
        """Exclusive offers issued for the order so far."""

    @abstractmethod
    def has_accepted(self, order_id: str) -> bool:
        """Whether any request of the order reached ACCEPTED."""

    @abstractmethod
    def has_live_pending(self, order_id: str, now: datetime) -> bool:
        """Whether the order has a PENDING request not yet past its expiry."""

    @abstractmethod
    def supersede_pending(self, order_id: str, exclude_id: Optional[str]) -> int:
        """Mark the other PENDING requests REJECTED without a response time."""

    @abstractmethod
    def expire_stale(self, now: datetime) -> List[Tuple[str, str]]:
        """Expire PENDING requests past their deadline.

        Returns ``(request_id, order_id)`` pairs of the rows it changed.
        """

    @abstractmethod
    def live_for_courier(self, courier_id: str, now: datetime) -> List[DeliveryRequest]:
        """PENDING, unexpired offers addressed to the courier."""
