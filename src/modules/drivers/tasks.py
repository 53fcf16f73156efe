"""Periodic tasks of the drivers module."""

from datetime import timedelta

import structlog
from celery import shared_task
from django.conf import settings
from django.utils import timezone

from modules.drivers.repositories.django_repository import DriverDjangoRepository

logger = structlog.get_logger(__name__)


@shared_task(name="drivers.clear_stale_locations")
def clear_stale_locations():
    """Forget locations older than the freshness window."""
    cutoff = timezone.now() - timedelta(minutes=settings.LOCATION_FRESHNESS_MINUTES)
    cleared = DriverDjangoRepository().clear_stale_locations(cutoff)
    logger.info("drivers.stale_locations_cleared", cleared=cleared)
    return {"cleared": cleared}
