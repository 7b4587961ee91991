"""Courier repository interface.

The dispatch core reads couriers through this contract and only mutates
the running counters and the last known position.
"""

from __future__ import annotations

from abc import abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.couriers.models import Courier


class ICourierRepository(IRepository["Courier"]):
    """Repository contract for courier profiles."""

    @abstractmethod
    def get_by_user_id(self, user_id: str) -> Optional[Courier]:
        """Retrieve the courier profile owned by an external user."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Courier]:
        """Retrieve a courier holding a row-level lock until commit."""

    @abstractmethod
    def list_available(self, city: str, fresh_since: datetime) -> List[Courier]:
        """Online, verified couriers in *city* with a position newer than *fresh_since*."""

    @abstractmethod
    def increment_earnings(self, courier_id: str, amount: Decimal) -> None:
        """Atomically add *amount* to the courier's total earnings."""

    @abstractmethod
    def apply_rejection_penalty(self, courier_id: str, amount: Decimal) -> None:
        """Atomically bump the rejection counter and the penalty total."""

    @abstractmethod
    def update_location(
        self,
        courier_id: str,
        latitude: float,
        longitude: float,
        at: datetime,
    ) -> None:
        """Store the last reported position (last write wins)."""

    @abstractmethod
    def set_online(self, courier_id: str, is_online: bool) -> None:
        """Toggle availability."""
