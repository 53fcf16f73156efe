"""Location ingest.

Validates a driver's position report, stores it as the driver's last
known location and forwards it to tracking admins.  Reports arrive over
HTTP or over the driver's channel; both paths end here.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any, Optional

import structlog
from django.conf import settings
from django.utils import timezone

from modules.drivers.exceptions import DriverNotFound
from modules.realtime.exceptions import (
    InvalidCoordinates,
    LowAccuracy,
    MissingCoordinates,
)
from modules.realtime.tracking import LocationUpdate

if TYPE_CHECKING:
    from modules.drivers.repositories.interfaces import IDriverRepository
    from modules.realtime.tracking import TrackingCoordinator

logger = structlog.get_logger(__name__)


def _as_float(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidCoordinates(f"{value!r} is not a number.") from None
    if not math.isfinite(number):
        raise InvalidCoordinates(f"{value!r} is not a finite number.")
    return number


class LocationIngestService:
    def __init__(
        self,
        driver_repository: IDriverRepository,
        coordinator: TrackingCoordinator,
    ) -> None:
        self._driver_repo = driver_repository
        self._coordinator = coordinator

    def report_location(
        self,
        user_id: Any,
        latitude: Any,
        longitude: Any,
        accuracy: Optional[Any] = None,
    ) -> LocationUpdate:
        """Record and forward one position report.

        Last write wins; reports are neither debounced nor ordered.

        Raises:
            MissingCoordinates: latitude or longitude absent.
            InvalidCoordinates: not finite numbers, out of range, or a
                negative accuracy.
            LowAccuracy: accuracy worse than ``LOCATION_MAX_ACCURACY_METERS``.
            DriverNotFound: the caller has no driver profile.
        """
        if latitude is None or longitude is None:
            raise MissingCoordinates()

        lat = _as_float(latitude)
        lng = _as_float(longitude)
        if not (-90 <= lat <= 90 and -180 <= lng <= 180):
            raise InvalidCoordinates()

        acc = _as_float(accuracy) if accuracy is not None else None
        if acc is not None and acc < 0:
            raise InvalidCoordinates("Accuracy cannot be negative.")
        if acc is not None and acc > settings.LOCATION_MAX_ACCURACY_METERS:
            logger.info(
                "location.rejected_low_accuracy", user_id=str(user_id), accuracy=acc
            )
            raise LowAccuracy(
                f"Accuracy {acc:g}m exceeds {settings.LOCATION_MAX_ACCURACY_METERS:g}m."
            )

        profile = self._driver_repo.get_by_user_id(user_id)
        if not profile:
            raise DriverNotFound()

        now = timezone.now()
        self._driver_repo.update_location(profile.id, lat, lng, acc, now)

        update = LocationUpdate(
            driver_id=str(profile.id),
            driver_name=profile.name,
            latitude=lat,
            longitude=lng,
            accuracy=acc,
            updated_at=now,
        )
        forwarded = self._coordinator.forward_location_update(update)
        logger.info("location.recorded", driver_id=str(profile.id), forwarded=forwarded)
        return update
