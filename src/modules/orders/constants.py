"""Order domain constants.

Defines status choices, actor roles, the order lifecycle graph and the
role permitted to drive each edge.
"""

from django.db import models


class OrderStatus(models.TextChoices):
    PLACED = "PLACED", "Placed"
    ACCEPTED = "ACCEPTED", "Accepted"
    READY = "READY", "Ready for pickup"
    ASSIGNED = "ASSIGNED", "Assigned"
    EN_ROUTE_TO_PICKUP = "EN_ROUTE_TO_PICKUP", "En route to pickup"
    PICKED_UP = "PICKED_UP", "Picked up"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY", "Out for delivery"
    DELIVERED = "DELIVERED", "Delivered"
    CANCELLED = "CANCELLED", "Cancelled"


class PaymentStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    SUCCESS = "SUCCESS", "Success"
    FAILED = "FAILED", "Failed"
    REFUNDED = "REFUNDED", "Refunded"


class ActorRole(models.TextChoices):
    CUSTOMER = "CUSTOMER", "Customer"
    VENDOR = "VENDOR", "Vendor"
    COURIER = "COURIER", "Courier"
    ADMIN = "ADMIN", "Admin"
    SYSTEM = "SYSTEM", "System"


# Forward edges only; CANCELLED is handled separately.
VALID_TRANSITIONS: dict[str, set[str]] = {
    OrderStatus.PLACED: {OrderStatus.ACCEPTED},
    OrderStatus.ACCEPTED: {OrderStatus.READY},
    OrderStatus.READY: {OrderStatus.ASSIGNED},
    OrderStatus.ASSIGNED: {OrderStatus.EN_ROUTE_TO_PICKUP},
    OrderStatus.EN_ROUTE_TO_PICKUP: {OrderStatus.PICKED_UP},
    OrderStatus.PICKED_UP: {OrderStatus.OUT_FOR_DELIVERY},
    OrderStatus.OUT_FOR_DELIVERY: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}

# Only present in the graph when early dispatch (ACCEPTED orders) is enabled.
EARLY_DISPATCH_EDGE: tuple[str, str] = (OrderStatus.ACCEPTED, OrderStatus.ASSIGNED)

TERMINAL_STATES: set[str] = {OrderStatus.DELIVERED, OrderStatus.CANCELLED}

ACTIVE_DELIVERY_STATES: set[str] = {
    OrderStatus.ASSIGNED,
    OrderStatus.EN_ROUTE_TO_PICKUP,
    OrderStatus.PICKED_UP,
    OrderStatus.OUT_FOR_DELIVERY,
}

COURIER_STATES: list[str] = [
    OrderStatus.EN_ROUTE_TO_PICKUP,
    OrderStatus.PICKED_UP,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
]

EDGE_PERMISSIONS: dict[tuple[str, str], set[str]] = {
    (OrderStatus.PLACED, OrderStatus.ACCEPTED): {ActorRole.VENDOR, ActorRole.ADMIN},
    (OrderStatus.ACCEPTED, OrderStatus.READY): {ActorRole.VENDOR, ActorRole.ADMIN},
    (OrderStatus.READY, OrderStatus.ASSIGNED): {ActorRole.SYSTEM, ActorRole.ADMIN},
    EARLY_DISPATCH_EDGE: {ActorRole.SYSTEM, ActorRole.ADMIN},
    (OrderStatus.ASSIGNED, OrderStatus.EN_ROUTE_TO_PICKUP): {ActorRole.COURIER},
    (OrderStatus.EN_ROUTE_TO_PICKUP, OrderStatus.PICKED_UP): {ActorRole.COURIER},
    (OrderStatus.PICKED_UP, OrderStatus.OUT_FOR_DELIVERY): {ActorRole.COURIER},
    (OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED): {ActorRole.COURIER},
}

# Statuses from which each role may cancel.  ADMIN and SYSTEM may cancel
# from any non-terminal status.
CANCEL_PERMISSIONS: dict[str, set[str]] = {
    ActorRole.CUSTOMER: {OrderStatus.PLACED},
    ActorRole.VENDOR: {OrderStatus.PLACED, OrderStatus.ACCEPTED, OrderStatus.READY},
}

ORDER_NUMBER_MAX_RETRIES = 5
