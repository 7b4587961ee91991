"""Generic repository interface (Dependency Inversion Principle).

Provides ``IRepository[T]``, the base abstract class that all
domain-specific repository interfaces extend.  Service-layer code
depends on this abstraction, never on Django ORM directly.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class IRepository(ABC, Generic[T]):
    """Base generic repository contract.

    Type parameter ``T`` represents the domain entity managed by the
    repository (e.g. ``Order``, ``Courier``).
    """

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[T]:
        """Retrieve an entity by its primary key."""

    @abstractmethod
    def save(self, entity: T) -> T:
        """Persist (create or update) an entity."""


class ISettingsRepository(ABC):
    """Read access to the persisted platform key/value settings."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the raw value for *key*, or ``None`` when unset."""

    @abstractmethod
    def get_decimal(self, key: str, default: Decimal) -> Decimal:
        """Return *key* parsed as ``Decimal`` or *default* when unset/invalid."""
