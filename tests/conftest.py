from decimal import Decimal

import pytest
from django.apps import apps
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from modules.drivers.repositories.django_repository import DriverDjangoRepository
from modules.orders.dtos import CreateOrderDTO, DeliveryAddressDTO, OrderItemDTO
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService


class RecordingBus:
    """Event bus double that keeps every published event."""

    def __init__(self):
        self.events = []

    def publish(self, event):
        self.events.append(event)

    def subscribe(self, event_class, handler):
        pass

    def names(self):
        return [event.event_name for event in self.events]


class RecordingChannel:
    """Channel double that records what the router sends it."""

    def __init__(self, fail_with=None):
        self.messages = []
        self.fail_with = fail_with

    def send(self, message):
        if self.fail_with is not None:
            raise self.fail_with
        self.messages.append(message)

    def types(self):
        return [message["type"] for message in self.messages]


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


@pytest.fixture()
def admin_user():
    return get_user_model().objects.create_user(
        "dispatcher", password="dispatch-pass", is_staff=True
    )


@pytest.fixture()
def admin_client(admin_user):
    client = APIClient()
    client.force_authenticate(admin_user)
    return client


@pytest.fixture()
def make_driver():
    repository = DriverDjangoRepository()

    def _make(username="ravi", name="Ravi Kumar", phone="9800000001"):
        return repository.create(
            {
                "username": username,
                "password": "driver-pass",
                "name": name,
                "phone": phone,
            }
        )

    return _make


@pytest.fixture()
def driver(make_driver):
    return make_driver()


@pytest.fixture()
def other_driver(make_driver):
    return make_driver(username="meena", name="Meena Iyer", phone="9800000002")


@pytest.fixture()
def driver_client(driver):
    client = APIClient()
    client.force_authenticate(driver.user)
    return client


@pytest.fixture()
def other_driver_client(other_driver):
    client = APIClient()
    client.force_authenticate(other_driver.user)
    return client


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


@pytest.fixture()
def recording_bus():
    return RecordingBus()


@pytest.fixture()
def order_service(recording_bus):
    return OrderService(
        order_repository=OrderDjangoRepository(),
        driver_repository=DriverDjangoRepository(),
        event_bus=recording_bus,
    )


@pytest.fixture()
def create_order_dto():
    def _build(total="500.00", payment_mode="Cash", customer_name="Asha Patel"):
        return CreateOrderDTO(
            customer_name=customer_name,
            customer_phone="9811111101",
            items=[
                OrderItemDTO(name="Rice 5kg", quantity=1, unit_price=Decimal(total)),
            ],
            address=DeliveryAddressDTO(
                address_line="12 MG Road",
                city="Bengaluru",
                pincode="560001",
                latitude=12.9756,
                longitude=77.6050,
            ),
            total_amount=Decimal(total),
            payment_mode=payment_mode,
        )

    return _build


@pytest.fixture()
def make_order(order_service, create_order_dto):
    def _make(**kwargs):
        return order_service.create_order(create_order_dto(**kwargs))

    return _make


# ---------------------------------------------------------------------------
# Realtime
# ---------------------------------------------------------------------------


def _clear_registry():
    registry = apps.get_app_config("realtime").registry
    for registration in registry.registrations():
        registry.unregister(registration.channel)


@pytest.fixture()
def clean_hub():
    """Empty the process-wide connection registry around a test."""
    _clear_registry()
    yield apps.get_app_config("realtime").registry
    _clear_registry()


@pytest.fixture()
def make_channel():
    return RecordingChannel
