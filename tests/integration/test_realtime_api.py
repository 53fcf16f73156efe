"""Integration tests for location reporting and admin location refresh."""

import pytest
from django.apps import apps

from modules.realtime.registry import Role

pytestmark = pytest.mark.integration

LOCATION_URL = "/api/v1/driver/location/"
REFRESH_URL = "/api/v1/admin/tracking/request-locations/"


@pytest.fixture()
def tracking_admin(clean_hub, make_channel):
    channel = make_channel()
    coordinator = apps.get_app_config("realtime").coordinator
    coordinator.register("admin-1", Role.ADMIN, "Dispatch", channel)
    coordinator.subscribe(channel)
    return channel


@pytest.fixture(autouse=True)
def no_push(monkeypatch):
    monkeypatch.setattr(
        "modules.realtime.tasks.wake_drivers_for_tracking",
        type("Task", (), {"delay": staticmethod(lambda **kwargs: None)}),
    )


class TestLocationReport:
    def test_accepted_report_is_stored_and_forwarded(
        self, driver_client, driver, tracking_admin
    ):
        response = driver_client.post(
            LOCATION_URL,
            {"latitude": 12.97, "longitude": 77.59, "accuracy": 150},
            format="json",
        )

        assert response.status_code == 200
        assert response.json()["latitude"] == 12.97
        driver.refresh_from_db()
        assert driver.last_latitude == 12.97
        forwarded = [
            m for m in tracking_admin.messages if m["type"] == "DRIVER_LOCATION_UPDATE"
        ]
        assert len(forwarded) == 1

    def test_inaccurate_report_is_rejected(self, driver_client, driver, tracking_admin):
        response = driver_client.post(
            LOCATION_URL,
            {"latitude": 12.97, "longitude": 77.59, "accuracy": 250},
            format="json",
        )

        assert response.status_code == 400
        assert response.json()["errors"][0]["code"] == "LOW_ACCURACY"
        driver.refresh_from_db()
        assert driver.last_location_at is None
        assert tracking_admin.types() == []

    def test_missing_coordinates(self, driver_client):
        response = driver_client.post(LOCATION_URL, {}, format="json")

        assert response.status_code == 400
        assert response.json()["errors"][0]["code"] == "MISSING_LOCATION"

    def test_admin_cannot_report(self, admin_client):
        response = admin_client.post(
            LOCATION_URL, {"latitude": 1, "longitude": 1}, format="json"
        )
        assert response.status_code == 403


class TestRequestLocations:
    def test_pings_connected_drivers(self, admin_client, clean_hub, make_channel):
        online = make_channel()
        coordinator = apps.get_app_config("realtime").coordinator
        coordinator.register("20", Role.DRIVER, "Ravi", online)

        response = admin_client.post(REFRESH_URL)

        assert response.status_code == 200
        assert response.json() == {"connected": 1, "push": {"success": 0, "failure": 0}}
        assert online.types() == ["REQUEST_LOCATION"]

    def test_drivers_cannot_trigger(self, driver_client):
        assert driver_client.post(REFRESH_URL).status_code == 403
