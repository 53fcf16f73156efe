"""Realtime app configuration.

The app config owns the process's connection registry, broadcast router
and tracking coordinator.  Consumers, views and event handlers reach them
through ``apps.get_app_config("realtime")``.
"""

from django.apps import AppConfig


class RealtimeConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.realtime"
    label = "realtime"

    def ready(self) -> None:
        from modules.realtime.handlers import subscribe_all
        from modules.realtime.registry import ConnectionRegistry
        from modules.realtime.router import BroadcastRouter
        from modules.realtime.tasks import wake_offline_drivers
        from modules.realtime.tracking import TrackingCoordinator
        from shared.infrastructure.bus import event_bus

        self.registry = ConnectionRegistry()
        self.router = BroadcastRouter(self.registry)
        self.coordinator = TrackingCoordinator(
            self.registry, self.router, waker=wake_offline_drivers
        )
        subscribe_all(event_bus, self.router)

    def ingest_service(self):
        from modules.drivers.repositories.django_repository import (
            DriverDjangoRepository,
        )
        from modules.realtime.ingest import LocationIngestService

        return LocationIngestService(DriverDjangoRepository(), self.coordinator)

    def location_request_service(self):
        from modules.drivers.repositories.django_repository import (
            DriverDjangoRepository,
        )
        from modules.realtime.push import get_push_sender
        from modules.realtime.services import LocationRequestService

        return LocationRequestService(
            DriverDjangoRepository(), self.coordinator, get_push_sender()
        )
