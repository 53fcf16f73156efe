from __future__ import annotations

import random
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

from modules.drivers.dtos import CreateDriverDTO
from modules.drivers.repositories.django_repository import DriverDjangoRepository
from modules.drivers.services import DriverService
from modules.orders.constants import PaymentMode
from modules.orders.dtos import CreateOrderDTO, DeliveryAddressDTO, OrderItemDTO
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService

DRIVERS = [
    ("ravi", "Ravi Kumar", "9800000001"),
    ("meena", "Meena Iyer", "9800000002"),
    ("arjun", "Arjun Das", "9800000003"),
]

CUSTOMERS = [
    ("Asha Patel", "9811111101", "12 MG Road", "Bengaluru", "560001", 12.9756, 77.6050),
    ("Vikram Rao", "9811111102", "44 Brigade Road", "Bengaluru", "560025", 12.9719, 77.6070),
    ("Nisha Menon", "9811111103", "7 Church Street", "Bengaluru", "560001", 12.9752, 77.6030),
    ("Karan Shah", "9811111104", "3 Residency Road", "Bengaluru", "560025", 12.9667, 77.6000),
    ("Pooja Nair", "9811111105", "90 Indiranagar 100ft", "Bengaluru", "560038", 12.9719, 77.6412),
]

ITEMS = [
    ("Rice 5kg", Decimal("320.00")),
    ("Cooking oil 1L", Decimal("180.00")),
    ("Milk 1L", Decimal("60.00")),
    ("Bread", Decimal("45.00")),
    ("Eggs x12", Decimal("90.00")),
]


class Command(BaseCommand):
    help = "Seed database with development drivers and pending orders."

    def add_arguments(self, parser):
        parser.add_argument("--orders", type=int, default=10)

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        admin_created = self._seed_admin()
        drivers_created = self._seed_drivers()
        orders_created = self._seed_orders(options["orders"])

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"admins={admin_created}, "
                f"drivers={drivers_created}, "
                f"orders={orders_created}"
            )
        )

    def _seed_admin(self) -> int:
        User = get_user_model()
        if User.objects.filter(username="admin").exists():
            return 0
        User.objects.create_superuser("admin", password="admin123")
        return 1

    def _seed_drivers(self) -> int:
        repository = DriverDjangoRepository()
        service = DriverService(repository)
        created = 0
        for username, name, phone in DRIVERS:
            if repository.exists(username, phone):
                continue
            service.onboard(
                CreateDriverDTO(
                    username=username, name=name, phone=phone, password="driver123"
                )
            )
            created += 1
        return created

    def _seed_orders(self, count: int) -> int:
        if Order.objects.exists():
            self.stdout.write(self.style.WARNING("Skipping orders (already seeded)."))
            return 0

        service = OrderService(OrderDjangoRepository(), DriverDjangoRepository())
        modes = list(PaymentMode)
        for _ in range(count):
            name, phone, line, city, pincode, lat, lng = random.choice(CUSTOMERS)
            picked = random.sample(ITEMS, k=random.randint(1, 3))
            items = [
                OrderItemDTO(name=item, quantity=random.randint(1, 3), unit_price=price)
                for item, price in picked
            ]
            total = sum((i.unit_price * i.quantity for i in items), Decimal("0.00"))
            service.create_order(
                CreateOrderDTO(
                    customer_name=name,
                    customer_phone=phone,
                    items=items,
                    address=DeliveryAddressDTO(
                        address_line=line,
                        city=city,
                        pincode=pincode,
                        latitude=lat,
                        longitude=lng,
                    ),
                    total_amount=total,
                    payment_mode=random.choice(modes),
                )
            )
        return count
