"""Broadcast router.

Best-effort, fire-and-forget delivery over the connection registry.  A
closed channel or a failing send is logged and skipped; there is no
queuing, retry or replay.  Clients recover missed state by re-fetching
over HTTP.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable

import structlog

from modules.realtime.exceptions import ChannelUnavailable
from modules.realtime.registry import ConnectionRegistry, Registration, Role

logger = structlog.get_logger(__name__)


class BroadcastRouter:
    def __init__(self, registry: ConnectionRegistry) -> None:
        self._registry = registry

    def broadcast_all(self, message: Dict[str, Any]) -> int:
        return self._deliver(self._registry.registrations(), message)

    def broadcast_to_role(self, message: Dict[str, Any], role: Role) -> int:
        return self._deliver(self._registry.registrations(role), message)

    def send_to_actor(self, actor_id: str, message: Dict[str, Any]) -> bool:
        """Send to one actor; a silent no-op when the actor is not connected."""
        registration = self._registry.get(actor_id)
        if registration is None:
            return False
        return self._deliver([registration], message) == 1

    def send_to_tracking_subscribers(self, message: Dict[str, Any]) -> int:
        subscribers = [r for r in self._registry.registrations() if r.tracking]
        return self._deliver(subscribers, message)

    def _deliver(
        self, registrations: Iterable[Registration], message: Dict[str, Any]
    ) -> int:
        """Send *message* to each registration; return how many accepted it."""
        delivered = 0
        for registration in registrations:
            try:
                registration.channel.send(message)
            except ChannelUnavailable:
                logger.info(
                    "router.channel_unavailable",
                    actor_id=registration.actor_id,
                    message_type=message.get("type"),
                )
            except Exception:
                logger.exception(
                    "router.send_failed",
                    actor_id=registration.actor_id,
                    message_type=message.get("type"),
                )
            else:
                delivered += 1
        return delivered
