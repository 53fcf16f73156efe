"""Tracking coordinator.

Admins subscribe to live driver positions by sending ``START_TRACKING`` on
their channel.  Drivers only report positions while at least one admin is
tracking, so ``START_TRACKING``/``STOP_TRACKING`` are broadcast to drivers
on the edges only: when the number of tracking admins goes from 0 to 1 and
from 1 to 0.  A tracking admin whose channel closes, or whose registration
is displaced by a newer connection, counts as an unsubscribe.

Edge detection and the registry update happen under one lock so two
admins racing to subscribe produce exactly one ``START_TRACKING``.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

import structlog

from modules.realtime import messages
from modules.realtime.registry import Channel, ConnectionRegistry, Registration, Role
from modules.realtime.router import BroadcastRouter

logger = structlog.get_logger(__name__)

Waker = Callable[[List[str]], None]


@dataclass(frozen=True)
class LocationUpdate:
    driver_id: str
    driver_name: str
    latitude: float
    longitude: float
    accuracy: Optional[float]
    updated_at: datetime

    def to_message(self) -> dict:
        return messages.driver_location_update(
            driver_id=self.driver_id,
            driver_name=self.driver_name,
            latitude=self.latitude,
            longitude=self.longitude,
            accuracy=self.accuracy,
            updated_at=self.updated_at.isoformat(),
        )


class TrackingCoordinator:
    """Owns the tracking subscription state machine.

    ``waker`` is called with the user ids of drivers that are currently
    connected whenever tracking starts, so the out-of-band push can skip
    them.  Its failures are logged and never affect the subscription.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        router: BroadcastRouter,
        waker: Optional[Waker] = None,
    ) -> None:
        self._registry = registry
        self._router = router
        self._waker = waker
        self._lock = threading.Lock()

    @property
    def is_active(self) -> bool:
        return self._registry.tracking_count() > 0

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    def register(
        self,
        actor_id: str,
        role: Role,
        display_name: str,
        channel: Channel,
    ) -> Registration:
        """Register a channel; reconcile tracking a registration gave up.

        A displaced tracking admin, or an admin channel re-registering under
        another role, counts as an unsubscribe.

        A driver joining while tracking is active is told to start
        reporting right away.
        """
        with self._lock:
            was_active = self.is_active
            self._registry.register(actor_id, role, display_name, channel)
            if was_active:
                self._stop_if_idle()
            registration = self._registry.get(actor_id)
            if role == Role.DRIVER and self.is_active:
                self._router.send_to_actor(actor_id, messages.start_tracking())

        logger.info("tracking.registered", actor_id=str(actor_id), role=str(role))
        return registration

    def disconnect(self, channel: Channel) -> Optional[Registration]:
        with self._lock:
            removed = self._registry.unregister(channel)
            if removed is not None and removed.tracking:
                self._stop_if_idle()

        if removed is not None:
            logger.info(
                "tracking.disconnected",
                actor_id=removed.actor_id,
                was_tracking=removed.tracking,
            )
        return removed

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, channel: Channel) -> bool:
        """Mark an admin channel as tracking.

        Returns ``True`` when the flag changed.  The 0 -> 1 crossing
        broadcasts ``START_TRACKING`` to drivers and wakes the others.
        """
        with self._lock:
            registration = self._registry.find(channel)
            if registration is None or registration.role != Role.ADMIN:
                logger.warning(
                    "tracking.subscribe_rejected",
                    actor_id=registration.actor_id if registration else None,
                )
                return False
            if registration.tracking:
                return False

            first = self._registry.tracking_count() == 0
            self._registry.set_tracking(channel, True)
            if first:
                self._router.broadcast_to_role(messages.start_tracking(), Role.DRIVER)
                online_drivers = self._registry.online_actor_ids(Role.DRIVER)

        logger.info(
            "tracking.subscribed", actor_id=registration.actor_id, first=first
        )
        if first:
            logger.info("tracking.started")
            self._wake(online_drivers)
        return True

    def unsubscribe(self, channel: Channel) -> bool:
        """Clear the tracking flag; the 1 -> 0 crossing stops drivers."""
        with self._lock:
            registration = self._registry.find(channel)
            if registration is None or not registration.tracking:
                return False
            self._registry.set_tracking(channel, False)
            self._stop_if_idle()

        logger.info("tracking.unsubscribed", actor_id=registration.actor_id)
        return True

    # ------------------------------------------------------------------
    # Location traffic
    # ------------------------------------------------------------------

    def request_all_locations_now(self) -> int:
        """Ask every connected driver for a position, tracking or not."""
        sent = self._router.broadcast_to_role(messages.request_location(), Role.DRIVER)
        logger.info("tracking.locations_requested", drivers=sent)
        return sent

    def forward_location_update(self, update: LocationUpdate) -> int:
        return self._router.send_to_tracking_subscribers(update.to_message())

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _stop_if_idle(self) -> None:
        # Caller holds self._lock.
        if self._registry.tracking_count() == 0:
            self._router.broadcast_to_role(messages.stop_tracking(), Role.DRIVER)
            logger.info("tracking.stopped")

    def _wake(self, online_driver_ids: List[str]) -> None:
        if self._waker is None:
            return
        try:
            self._waker(online_driver_ids)
        except Exception:
            logger.exception("tracking.wake_failed")
