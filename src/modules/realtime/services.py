"""Admin-triggered location refresh."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict

import structlog

from modules.realtime.tasks import LOCATION_REQUEST

if TYPE_CHECKING:
    from modules.drivers.repositories.interfaces import IDriverRepository
    from modules.realtime.push import IPushSender
    from modules.realtime.tracking import TrackingCoordinator

logger = structlog.get_logger(__name__)


class LocationRequestService:
    def __init__(
        self,
        driver_repository: IDriverRepository,
        coordinator: TrackingCoordinator,
        push_sender: IPushSender,
    ) -> None:
        self._driver_repo = driver_repository
        self._coordinator = coordinator
        self._sender = push_sender

    def request_locations(self) -> Dict[str, Any]:
        """Ask every driver for a fresh position.

        Connected drivers get ``REQUEST_LOCATION`` on their channel; every
        active driver with a push token also gets a push, since a connected
        app may be backgrounded.
        """
        tokens = self._driver_repo.push_tokens()
        if tokens:
            result = self._sender.notify_all(tokens, LOCATION_REQUEST)
            pushed = {"success": result.success_count, "failure": result.failure_count}
        else:
            pushed = {"success": 0, "failure": 0}

        connected = self._coordinator.request_all_locations_now()
        logger.info("tracking.refresh_requested", connected=connected, **pushed)
        return {"connected": connected, "push": pushed}
