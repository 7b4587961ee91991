"""Order domain exceptions.

Raised by the Service Layer and the state machine when business rules
are violated.  The API layer translates them via ``modules.core.errors``.
"""

from __future__ import annotations

from modules.core.exceptions import Forbidden, InvalidTransition, NotFound


class OrderNotFound(NotFound):
    """The requested order does not exist."""


class ShopNotFound(NotFound):
    """The shop referenced by the order or commission update does not exist."""


class InvalidOrderStatus(InvalidTransition):
    """The target status is not a direct successor of the current one."""


class TransitionForbidden(Forbidden):
    """The actor's role may not drive this edge of the lifecycle."""
