from __future__ import annotations

import random
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.utils import timezone

from modules.couriers.models import Courier, VehicleType
from modules.orders.constants import OrderStatus
from modules.orders.models import Order, Shop


class Command(BaseCommand):
    help = "Seed database with development shops, couriers and orders."

    def add_arguments(self, parser):
        parser.add_argument("--city", default="Bengaluru")
        parser.add_argument("--couriers", type=int, default=8)
        parser.add_argument("--orders", type=int, default=20)

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        users = self._seed_users()
        shops = self._seed_shops(users["vendor"], options["city"])
        couriers = self._seed_couriers(options["city"], options["couriers"])
        orders_created = self._seed_orders(users["customer"], shops, options["orders"])

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"shops={len(shops)}, "
                f"couriers={len(couriers)}, "
                f"orders={orders_created}"
            )
        )

    def _seed_users(self) -> dict:
        User = get_user_model()
        if not User.objects.filter(username="admin").exists():
            User.objects.create_superuser("admin", password="admin123")
        vendor, _ = User.objects.get_or_create(username="vendor")
        customer, _ = User.objects.get_or_create(username="customer")
        return {"vendor": vendor, "customer": customer}

    def _seed_shops(self, owner, city: str) -> list[Shop]:
        self.stdout.write("Creating shops...")
        catalog = [
            ("Corner Bakery", 12.9716, 77.5946),
            ("Green Grocer", 12.9352, 77.6245),
            ("Noodle House", 12.9784, 77.6408),
        ]
        shops = []
        for name, lat, lng in catalog:
            shop, _ = Shop.objects.get_or_create(
                name=name,
                defaults={
                    "owner_id": str(owner.pk),
                    "city": city,
                    "address": f"{name}, {city}",
                    "latitude": lat,
                    "longitude": lng,
                },
            )
            shops.append(shop)
        self.stdout.write(self.style.SUCCESS("Creating shops... Done!"))
        return shops

    def _seed_couriers(self, city: str, count: int) -> list[Courier]:
        self.stdout.write("Creating couriers...")
        User = get_user_model()
        now = timezone.now()
        couriers = []
        for i in range(count):
            user, _ = User.objects.get_or_create(username=f"courier{i + 1}")
            courier, _ = Courier.objects.get_or_create(
                user_id=str(user.pk),
                defaults={
                    "name": f"Courier {i + 1}",
                    "phone": f"+9198000000{i:02d}",
                    "city": city,
                    "is_online": True,
                    "is_verified": True,
                    "vehicle_type": random.choice(VehicleType.values),
                    "current_latitude": 12.95 + random.uniform(-0.05, 0.05),
                    "current_longitude": 77.60 + random.uniform(-0.05, 0.05),
                    "last_location_update": now,
                },
            )
            couriers.append(courier)
        self.stdout.write(self.style.SUCCESS("Creating couriers... Done!"))
        return couriers

    def _seed_orders(self, customer, shops: list[Shop], count: int) -> int:
        self.stdout.write("Creating orders...")
        orders_created = 0
        statuses = [OrderStatus.PLACED, OrderStatus.ACCEPTED]
        for i in range(count):
            _, created = Order.objects.get_or_create(
                customer_id=str(customer.pk),
                notes=f"Seed order {i + 1}",
                defaults={
                    "shop": random.choice(shops),
                    "status": random.choice(statuses),
                    "delivery_fee": Decimal(random.choice(["30.00", "45.00", "60.00"])),
                    "tip": Decimal(random.choice(["0.00", "10.00", "20.00"])),
                },
            )
            orders_created += int(created)
        self.stdout.write(self.style.SUCCESS("Creating orders... Done!"))
        return orders_created
