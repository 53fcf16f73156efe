"""Unit tests for push wake-up and admin location refresh."""

from unittest.mock import Mock

import pytest

from modules.drivers.constants import DriverStatus
from modules.drivers.repositories.django_repository import DriverDjangoRepository
from modules.realtime.push import LoggingPushSender, PushResult, get_push_sender
from modules.realtime.registry import ConnectionRegistry, Role
from modules.realtime.router import BroadcastRouter
from modules.realtime.services import LocationRequestService
from modules.realtime.tasks import LOCATION_REQUEST, wake_drivers_for_tracking
from modules.realtime.tracking import TrackingCoordinator

pytestmark = pytest.mark.unit


class StubSender:
    def __init__(self):
        self.calls = []

    def notify_all(self, tokens, data):
        self.calls.append((sorted(tokens), data))
        return PushResult(success_count=len(tokens), failure_count=0)


@pytest.fixture()
def fleet(driver, other_driver, make_driver):
    driver.push_token = "tok-ravi"
    driver.save()
    other_driver.push_token = "tok-meena"
    other_driver.save()
    inactive = make_driver(username="arjun", name="Arjun Das", phone="9800000003")
    inactive.push_token = "tok-arjun"
    inactive.status = DriverStatus.INACTIVE
    inactive.save()
    make_driver(username="noor", name="Noor Ali", phone="9800000004")
    return driver, other_driver


class TestPushSender:
    def test_logging_sender_reports_every_token_as_sent(self):
        result = LoggingPushSender().notify_all(["a", "b"], {"type": "X"})
        assert result == PushResult(success_count=2, failure_count=0)

    def test_sender_class_comes_from_settings(self, settings):
        settings.PUSH_SENDER_CLASS = "modules.realtime.push.LoggingPushSender"
        assert isinstance(get_push_sender(), LoggingPushSender)


class TestWakeDriversTask:
    def test_pushes_active_drivers_with_tokens(self, fleet, monkeypatch):
        sender = StubSender()
        monkeypatch.setattr("modules.realtime.tasks.get_push_sender", lambda: sender)

        result = wake_drivers_for_tracking.delay().get()

        assert result == {"success": 2, "failure": 0}
        assert sender.calls == [(["tok-meena", "tok-ravi"], LOCATION_REQUEST)]

    def test_skips_connected_drivers(self, fleet, monkeypatch):
        ravi, _ = fleet
        sender = StubSender()
        monkeypatch.setattr("modules.realtime.tasks.get_push_sender", lambda: sender)

        wake_drivers_for_tracking.delay(exclude_user_ids=[str(ravi.user_id)])

        assert sender.calls[0][0] == ["tok-meena"]

    def test_ignores_connected_ids_that_are_not_users(self, fleet, monkeypatch):
        ravi, _ = fleet
        sender = StubSender()
        monkeypatch.setattr("modules.realtime.tasks.get_push_sender", lambda: sender)

        result = wake_drivers_for_tracking.delay(
            exclude_user_ids=["not-a-number", str(ravi.user_id)]
        ).get()

        assert result == {"success": 1, "failure": 0}
        assert sender.calls == [(["tok-meena"], LOCATION_REQUEST)]

    def test_nothing_to_push(self, monkeypatch):
        sender = StubSender()
        monkeypatch.setattr("modules.realtime.tasks.get_push_sender", lambda: sender)

        assert wake_drivers_for_tracking() == {"success": 0, "failure": 0}
        assert sender.calls == []


class TestLocationRequestService:
    def test_pushes_everyone_and_pings_connected_drivers(self, fleet, make_channel):
        registry = ConnectionRegistry()
        coordinator = TrackingCoordinator(registry, BroadcastRouter(registry))
        online = make_channel()
        coordinator.register(str(fleet[0].user_id), Role.DRIVER, "Ravi", online)
        sender = StubSender()
        service = LocationRequestService(DriverDjangoRepository(), coordinator, sender)

        result = service.request_locations()

        assert result == {"connected": 1, "push": {"success": 2, "failure": 0}}
        assert online.types() == ["REQUEST_LOCATION"]
        assert sender.calls[0][0] == ["tok-meena", "tok-ravi"]

    def test_without_tokens_only_pings_channels(self):
        registry = ConnectionRegistry()
        coordinator = TrackingCoordinator(registry, BroadcastRouter(registry))
        sender = Mock()
        service = LocationRequestService(DriverDjangoRepository(), coordinator, sender)

        result = service.request_locations()

        assert result == {"connected": 0, "push": {"success": 0, "failure": 0}}
        sender.notify_all.assert_not_called()
