from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.utils import timezone
from rest_framework.test import APIClient

from modules.core.notifications import InMemoryNotificationPublisher
from modules.couriers.models import Courier
from modules.couriers.repositories import CourierDjangoRepository
from modules.deliveries.config import DispatchConfig
from modules.deliveries.earnings import EarningsCalculator
from modules.deliveries.ledger import DeliveryRequestLedger
from modules.deliveries.matcher import DispatchMatcher
from modules.deliveries.notifications import DeliveryNotifier
from modules.deliveries.repositories import (
    DeliveryDjangoRepository,
    DeliveryRequestDjangoRepository,
)
from modules.deliveries.services import DeliveryService, TrackingService
from modules.deliveries.verification import VerificationGate
from modules.orders.constants import OrderStatus
from modules.orders.models import Order, Shop
from modules.orders.notifications import OrderNotifier
from modules.orders.repositories import OrderDjangoRepository
from modules.orders.state_machine import OrderStateMachine
from shared.infrastructure.bus import InMemoryEventBus

# Shop at MG Road, Bengaluru; couriers are placed relative to it.
SHOP_LAT = 12.9716
SHOP_LNG = 77.5946


class FrozenClock:
    """Callable clock the services accept in place of ``timezone.now``."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture(autouse=True)
def _clear_cache():
    """Throttle counters live in the cache and user ids repeat across tests."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


# ---------------------------------------------------------------------------
# Users and entities
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_user():
    User = get_user_model()
    counter = {"n": 0}

    def _make(username: str | None = None, **extra):
        counter["n"] += 1
        return User.objects.create_user(
            username or f"user{counter['n']}", password="pass1234", **extra
        )

    return _make


@pytest.fixture()
def admin_user(make_user):
    return make_user("ops-admin", is_staff=True)


@pytest.fixture()
def vendor_user(make_user):
    return make_user("vendor")


@pytest.fixture()
def customer_user(make_user):
    return make_user("customer")


@pytest.fixture()
def shop(vendor_user):
    return Shop.objects.create(
        owner_id=str(vendor_user.pk),
        name="Corner Bakery",
        address="MG Road 1",
        city="Bengaluru",
        latitude=SHOP_LAT,
        longitude=SHOP_LNG,
    )


@pytest.fixture()
def make_order(shop, customer_user):
    def _make(status=OrderStatus.READY, **fields):
        defaults = {
            "shop": shop,
            "customer_id": str(customer_user.pk),
            "status": status,
            "delivery_fee": Decimal("100.00"),
            "tip": Decimal("20.00"),
        }
        defaults.update(fields)
        return Order.objects.create(**defaults)

    return _make


@pytest.fixture()
def make_courier(make_user):
    """Courier ``offset_km`` north of the shop (0.009 deg of latitude ~ 1 km)."""

    def _make(offset_km: float = 1.0, user=None, **fields):
        user = user or make_user()
        defaults = {
            "user_id": str(user.pk),
            "name": f"Courier {user.pk}",
            "phone": "+919800000000",
            "city": "Bengaluru",
            "is_online": True,
            "is_verified": True,
            "current_latitude": SHOP_LAT + offset_km * 0.009,
            "current_longitude": SHOP_LNG,
            "last_location_update": timezone.now(),
        }
        defaults.update(fields)
        courier = Courier.objects.create(**defaults)
        courier.user = user
        return courier

    return _make


# ---------------------------------------------------------------------------
# Services wired with in-memory publisher and a controllable clock
# ---------------------------------------------------------------------------


@pytest.fixture()
def clock():
    return FrozenClock(timezone.now())


@pytest.fixture()
def publisher():
    return InMemoryNotificationPublisher()


@pytest.fixture()
def dispatch_config():
    return DispatchConfig()


@pytest.fixture()
def state_machine():
    return OrderStateMachine(
        order_repository=OrderDjangoRepository(), event_bus=InMemoryEventBus()
    )


@pytest.fixture()
def ledger(clock):
    return DeliveryRequestLedger(DeliveryRequestDjangoRepository(), clock=clock)


@pytest.fixture()
def build_matcher(clock, publisher, ledger, state_machine):
    def _build(config: DispatchConfig | None = None) -> DispatchMatcher:
        config = config or DispatchConfig()
        machine = state_machine
        if config.allow_accepted_orders:
            machine = OrderStateMachine(
                order_repository=OrderDjangoRepository(),
                event_bus=InMemoryEventBus(),
                allow_early_dispatch=True,
            )
        return DispatchMatcher(
            order_repository=OrderDjangoRepository(),
            courier_repository=CourierDjangoRepository(),
            delivery_repository=DeliveryDjangoRepository(),
            ledger=ledger,
            state_machine=machine,
            order_notifier=OrderNotifier(publisher),
            delivery_notifier=DeliveryNotifier(publisher),
            verification_gate=VerificationGate(),
            config=config,
            clock=clock,
        )

    return _build


@pytest.fixture()
def matcher(build_matcher, dispatch_config):
    return build_matcher(dispatch_config)


@pytest.fixture()
def delivery_service(state_machine, publisher, clock):
    deliveries = DeliveryDjangoRepository()
    couriers = CourierDjangoRepository()
    orders = OrderDjangoRepository()
    return DeliveryService(
        order_repository=orders,
        delivery_repository=deliveries,
        courier_repository=couriers,
        state_machine=state_machine,
        verification_gate=VerificationGate(),
        earnings_calculator=EarningsCalculator(deliveries, couriers, orders, clock=clock),
        rate_resolver=lambda courier: Decimal("10.00"),
        notifier=OrderNotifier(publisher),
        clock=clock,
    )


@pytest.fixture()
def tracking_service(clock):
    return TrackingService(
        delivery_repository=DeliveryDjangoRepository(),
        courier_repository=CourierDjangoRepository(),
        average_speed_kmh=30.0,
        clock=clock,
    )


@pytest.fixture()
def assigned(make_order, make_courier, matcher, admin_user):
    """An ASSIGNED order with its delivery and courier."""
    from modules.orders.constants import ActorRole
    from modules.orders.state_machine import Actor

    courier = make_courier()
    order = make_order()
    delivery = matcher.assign(
        str(order.id), str(courier.id), Actor(ActorRole.ADMIN, str(admin_user.pk))
    )
    order.refresh_from_db()
    return order, delivery, courier
