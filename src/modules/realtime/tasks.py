"""Asynchronous tasks of the realtime module."""

import structlog
from celery import shared_task

from modules.drivers.repositories.django_repository import DriverDjangoRepository
from modules.realtime.push import get_push_sender

logger = structlog.get_logger(__name__)

LOCATION_REQUEST = {
    "type": "LOCATION_REQUEST",
    "title": "Location needed",
    "body": "Dispatch is tracking drivers. Open the app to share your location.",
}


@shared_task(name="realtime.wake_drivers_for_tracking")
def wake_drivers_for_tracking(exclude_user_ids=None):
    """Push ``LOCATION_REQUEST`` to active drivers not on an open channel."""
    tokens = DriverDjangoRepository().push_tokens(exclude_user_ids=exclude_user_ids)
    if not tokens:
        logger.info("push.wake_skipped", reason="no_offline_drivers_with_token")
        return {"success": 0, "failure": 0}

    result = get_push_sender().notify_all(tokens, LOCATION_REQUEST)
    logger.info(
        "push.wake_sent",
        success=result.success_count,
        failure=result.failure_count,
    )
    return {"success": result.success_count, "failure": result.failure_count}


def wake_offline_drivers(online_driver_ids):
    """Queue a push to drivers that are not on an open channel."""
    wake_drivers_for_tracking.delay(exclude_user_ids=online_driver_ids)
