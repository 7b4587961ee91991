"""Delivery domain constants."""

from django.db import models


class DeliveryRequestStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    ACCEPTED = "ACCEPTED", "Accepted"
    REJECTED = "REJECTED", "Rejected"
    EXPIRED = "EXPIRED", "Expired"


class AcceptOutcome(models.TextChoices):
    ACCEPTED = "accepted", "Accepted"
    ALREADY_ASSIGNED = "already_assigned", "Already assigned"
    EXPIRED = "expired", "Expired"


class DeliveryScope(models.TextChoices):
    ACTIVE = "active", "Active"
    HISTORY = "history", "History"


NEW_DELIVERY_EVENT = "new_delivery"
DELIVERY_REQUEST_EVENT = "delivery_request"

LOCATION_HISTORY_DEFAULT_LIMIT = 100
LOCATION_HISTORY_MAX_LIMIT = 1000
