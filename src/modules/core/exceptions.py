"""Domain error taxonomy shared by every module.

Raised by the Service Layer when business rules are violated.
Each class carries a stable ``code`` so the API layer can translate it
into an HTTP response without inspecting messages.  Module-specific
exceptions (``OrderNotFound``, ``OfferNotOwned`` ...) subclass these.
"""

from __future__ import annotations


class DomainError(Exception):
    """Base class for business-rule failures surfaced to the caller."""

    code = "domain_error"


class NotFound(DomainError):
    """An order, courier, delivery or offer does not exist."""

    code = "not_found"


class Forbidden(DomainError):
    """The actor may not perform the operation (wrong role or courier)."""

    code = "forbidden"


class InvalidTransition(DomainError):
    """The requested status edge is not part of the lifecycle graph."""

    code = "invalid_transition"


class Conflict(DomainError):
    """A delivery already exists or an offer was already resolved."""

    code = "conflict"


class InvalidVerificationCode(DomainError):
    """The submitted delivery confirmation code does not match."""

    code = "invalid_verification_code"


class NoCourierAvailable(DomainError):
    """No eligible courier accepted the order; it stays READY."""

    code = "no_courier_available"


class InvalidCoordinates(DomainError):
    """Latitude/longitude outside the valid range."""

    code = "invalid_coordinates"


class ExternalServiceError(DomainError):
    """Persistence or notification layer failure; safe to retry."""

    code = "external_service_error"
