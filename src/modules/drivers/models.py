"""DriverProfile model.

A driver is a Django user account plus this profile.  The profile holds
the delivery counters, the last reported location and the device push
token used to wake the app when an admin starts tracking.

The last location is only meaningful inside the freshness window
(``LOCATION_FRESHNESS_MINUTES``); ``clear_stale_locations`` nulls it out
afterwards, and readers treat a missing or stale value as "no location".
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any, Dict, Optional

from django.conf import settings
from django.db import models
from django.utils import timezone

from modules.core.models import BaseModel
from modules.drivers.constants import DriverStatus
from shared.domain.events import DomainEventMixin


class DriverProfile(DomainEventMixin, BaseModel):
    user: models.OneToOneField = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="driver_profile",
    )
    name: models.CharField = models.CharField(max_length=200)
    phone: models.CharField = models.CharField(max_length=20, unique=True)
    status: models.CharField = models.CharField(
        max_length=10,
        choices=DriverStatus.choices,
        default=DriverStatus.ACTIVE,
    )
    total_deliveries: models.PositiveIntegerField = models.PositiveIntegerField(
        default=0
    )
    completed_deliveries: models.PositiveIntegerField = models.PositiveIntegerField(
        default=0
    )

    last_latitude: models.FloatField = models.FloatField(null=True, blank=True)
    last_longitude: models.FloatField = models.FloatField(null=True, blank=True)
    last_accuracy: models.FloatField = models.FloatField(null=True, blank=True)
    last_location_at: models.DateTimeField = models.DateTimeField(
        null=True, blank=True
    )

    push_token: models.CharField = models.CharField(
        max_length=255, blank=True, default=""
    )

    class Meta:
        db_table = "driver_profiles"
        ordering = ["name"]
        indexes = [
            models.Index(fields=["status"], name="drivers_status_idx"),
        ]

    @property
    def is_active(self) -> bool:
        return self.status == DriverStatus.ACTIVE

    @property
    def last_location(self) -> Optional[Dict[str, Any]]:
        if (
            self.last_latitude is None
            or self.last_longitude is None
            or self.last_location_at is None
        ):
            return None
        return {
            "latitude": self.last_latitude,
            "longitude": self.last_longitude,
            "accuracy": self.last_accuracy,
            "updated_at": self.last_location_at,
        }

    def location_age_minutes(self, now=None) -> Optional[int]:
        if self.last_location_at is None:
            return None
        now = now or timezone.now()
        return int((now - self.last_location_at).total_seconds() // 60)

    def has_fresh_location(self, now=None) -> bool:
        if self.last_location is None:
            return False
        now = now or timezone.now()
        window = timedelta(minutes=settings.LOCATION_FRESHNESS_MINUTES)
        return now - self.last_location_at <= window

    def __str__(self) -> str:
        return f"{self.name} ({self.phone})"
