"""Retention task and development seed command."""

from datetime import timedelta
from io import StringIO

import pytest
from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.utils import timezone
from freezegun import freeze_time

from modules.drivers.models import DriverProfile
from modules.orders.constants import DeliveryStatus
from modules.orders.dtos import CompleteOrderDTO
from modules.orders.models import Order
from modules.orders.tasks import purge_delivered_orders

pytestmark = pytest.mark.integration


def test_purge_task_removes_old_deliveries(order_service, make_order, driver):
    old = make_order()
    order_service.claim_order(str(old.id), driver.user_id)
    with freeze_time(timezone.now() - timedelta(days=3)):
        order_service.complete_order(str(old.id), driver.user_id, CompleteOrderDTO())
    make_order()

    result = purge_delivered_orders.delay().get()

    assert result == {"deleted": 1}
    assert not Order.objects.filter(delivery_status=DeliveryStatus.DELIVERED).exists()


class TestSeedData:
    def test_seeds_admin_drivers_and_orders(self):
        out = StringIO()

        call_command("seed_data", "--orders", "4", stdout=out)

        assert get_user_model().objects.filter(username="admin", is_staff=True).exists()
        assert DriverProfile.objects.count() == 3
        assert Order.objects.filter(delivery_status=DeliveryStatus.PENDING).count() == 4
        assert "Seed completed" in out.getvalue()

    def test_second_run_is_a_no_op(self):
        call_command("seed_data", "--orders", "2", stdout=StringIO())
        out = StringIO()

        call_command("seed_data", stdout=out)

        assert DriverProfile.objects.count() == 3
        assert Order.objects.count() == 2
        assert "admins=0, drivers=0, orders=0" in out.getvalue()
