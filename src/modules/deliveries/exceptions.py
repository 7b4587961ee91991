"""Delivery domain exceptions."""

from __future__ import annotations

from modules.core.exceptions import Conflict, Forbidden, NotFound


class DeliveryNotFound(NotFound):
    """No delivery exists for the given id or order."""


class DeliveryRequestNotFound(NotFound):
    """The offer does not exist."""


class OfferNotOwned(Forbidden):
    """The offer was made to a different courier."""


class OfferAlreadyResolved(Conflict):
    """The offer has already been accepted, rejected or expired."""


class DeliveryAlreadyExists(Conflict):
    """The order already has a delivery."""


class CourierBusy(Conflict):
    """The courier already carries an active delivery."""


class DeliveryClosed(Conflict):
    """The delivery is finished or cancelled; tracking writes are refused."""


class CourierNotEligible(Conflict):
    """The courier cannot take deliveries (e.g. not verified)."""


class OffersStillOpen(Conflict):
    """The order still has unexpired offers; wait for them to resolve."""
