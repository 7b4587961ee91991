"""Domain events for the Orders bounded context."""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderStatusChanged(DomainEvent):
    """Raised on every forward transition of the lifecycle."""

    old_status: str = ""
    new_status: str = ""
    actor_role: str = ""


@dataclass(frozen=True)
class OrderCancelled(DomainEvent):
    """Raised when an order is cancelled from a non-terminal status."""

    old_status: str = ""
    actor_role: str = ""
