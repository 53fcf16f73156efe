"""A full dispatch day: create, race, claim, deliver, with live fan-out."""

from decimal import Decimal

import pytest
from django.apps import apps

from modules.orders.models import Transaction
from modules.realtime.registry import Role

pytestmark = pytest.mark.integration

ORDER = {
    "customer_name": "Asha Patel",
    "customer_phone": "9811111101",
    "items": [{"name": "Rice 5kg", "quantity": 1, "unit_price": "500.00"}],
    "delivery_address": {"address_line": "12 MG Road", "city": "Bengaluru"},
    "total_amount": "500.00",
    "payment_mode": "Cash",
}


@pytest.fixture()
def live(clean_hub, make_channel, driver, other_driver):
    channels = {"admin": make_channel(), "ravi": make_channel(), "meena": make_channel()}
    coordinator = apps.get_app_config("realtime").coordinator
    coordinator.register("admin-1", Role.ADMIN, "Dispatch", channels["admin"])
    coordinator.register(str(driver.user_id), Role.DRIVER, "Ravi", channels["ravi"])
    coordinator.register(
        str(other_driver.user_id), Role.DRIVER, "Meena", channels["meena"]
    )
    return channels


def test_dispatch_day(
    admin_client,
    driver_client,
    other_driver_client,
    driver,
    other_driver,
    live,
    django_capture_on_commit_callbacks,
):
    with django_capture_on_commit_callbacks(execute=True):
        order_a = admin_client.post("/api/v1/admin/orders/", ORDER, format="json").json()
        order_b = admin_client.post(
            "/api/v1/admin/orders/", {**ORDER, "customer_name": "Vikram Rao"},
            format="json",
        ).json()
    assert live["ravi"].types() == ["ORDER_CREATED", "ORDER_CREATED"]
    assert live["meena"].types() == ["ORDER_CREATED", "ORDER_CREATED"]

    # Both drivers go for order A; Ravi's request lands first.
    with django_capture_on_commit_callbacks(execute=True):
        first = driver_client.post(f"/api/v1/driver/orders/{order_a['id']}/take/")
        second = other_driver_client.post(f"/api/v1/driver/orders/{order_a['id']}/take/")
    assert first.status_code == 200
    assert second.status_code == 409
    assert second.json()["errors"][0]["code"] == "ORDER_ALREADY_ASSIGNED"
    taken = [m for m in live["admin"].messages if m["type"] == "ORDER_TAKEN"]
    assert len(taken) == 1
    assert taken[0]["driverId"] == str(driver.id)

    with django_capture_on_commit_callbacks(execute=True):
        response = other_driver_client.post(
            f"/api/v1/driver/orders/{order_b['id']}/take/"
        )
    assert response.json()["assigned_driver_id"] == str(other_driver.id)

    with django_capture_on_commit_callbacks(execute=True):
        driver_client.post(f"/api/v1/driver/orders/{order_a['id']}/start/")
        delivered = driver_client.post(
            f"/api/v1/driver/orders/{order_a['id']}/complete/",
            {"latitude": 12.9756, "longitude": 77.605},
            format="json",
        ).json()

    assert delivered["delivery_status"] == "Delivered"
    assert delivered["payment_status"] == "Completed"
    assert live["admin"].types()[-2:] == ["ORDER_UPDATED", "ORDER_DELIVERED"]

    driver.refresh_from_db()
    assert driver.total_deliveries == 1
    assert driver.completed_deliveries == 1
    transaction = Transaction.objects.get(order_number=order_a["order_number"])
    assert transaction.amount == Decimal("500.00")
    assert transaction.payment_mode == "Cash"

    dashboard = admin_client.get("/api/v1/admin/orders/dashboard/").json()
    assert dashboard["delivered_orders"] == 1
    assert dashboard["pending_orders"] == 0
    assert float(dashboard["total_revenue"]) == 500.0
