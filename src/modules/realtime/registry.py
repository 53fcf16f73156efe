"""Connection registry.

Maps logical actors (user ids) to their live channel.  Registrations are
process-local and never persisted; a restart forgets every connection and
clients re-register on reconnect.

At most one registration exists per actor: registering again replaces
the previous one (last registration wins) and hands the displaced
registration back so the caller can reconcile its tracking state.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Dict, List, Optional, Protocol

import structlog

logger = structlog.get_logger(__name__)


class Role(StrEnum):
    ADMIN = "admin"
    DRIVER = "driver"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> Role:
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.UNKNOWN


class Channel(Protocol):
    """Anything that can deliver a message to one connected client.

    ``send`` must not block; it raises ``ChannelUnavailable`` when the
    client is gone.
    """

    def send(self, message: Dict[str, Any]) -> None: ...


@dataclass
class Registration:
    actor_id: str
    role: Role
    display_name: str
    channel: Channel
    tracking: bool = False


class ConnectionRegistry:
    """Thread-safe actor -> channel map."""

    def __init__(self) -> None:
        self._by_actor: Dict[str, Registration] = {}
        self._lock = threading.Lock()

    def register(
        self,
        actor_id: str,
        role: Role,
        display_name: str,
        channel: Channel,
    ) -> Optional[Registration]:
        """Bind *actor_id* to *channel* and return the displaced registration.

        Re-registering the same channel displaces nothing and keeps its
        tracking flag while the role stays admin.
        """
        actor_id = str(actor_id)
        with self._lock:
            previous = self._by_actor.get(actor_id)
            same_channel = previous is not None and previous.channel is channel
            self._by_actor[actor_id] = Registration(
                actor_id=actor_id,
                role=role,
                display_name=display_name,
                channel=channel,
                tracking=same_channel and role == Role.ADMIN and previous.tracking,
            )
        if previous is not None and not same_channel:
            logger.info("registry.displaced", actor_id=actor_id, role=str(role))
            return previous
        return None

    def unregister(self, channel: Channel) -> Optional[Registration]:
        """Remove the registration bound to *channel*, if any."""
        with self._lock:
            for actor_id, registration in self._by_actor.items():
                if registration.channel is channel:
                    del self._by_actor[actor_id]
                    return registration
        return None

    def lookup(self, actor_id: str) -> Optional[Channel]:
        registration = self.get(actor_id)
        return registration.channel if registration else None

    def get(self, actor_id: str) -> Optional[Registration]:
        with self._lock:
            return self._by_actor.get(str(actor_id))

    def find(self, channel: Channel) -> Optional[Registration]:
        with self._lock:
            for registration in self._by_actor.values():
                if registration.channel is channel:
                    return registration
        return None

    def set_tracking(self, channel: Channel, tracking: bool) -> Optional[Registration]:
        """Set the tracking flag of the registration bound to *channel*."""
        with self._lock:
            for registration in self._by_actor.values():
                if registration.channel is channel:
                    registration.tracking = tracking
                    return registration
        return None

    def tracking_count(self) -> int:
        with self._lock:
            return sum(1 for r in self._by_actor.values() if r.tracking)

    def registrations(self, role: Optional[Role] = None) -> List[Registration]:
        """Snapshot of current registrations, optionally for one role."""
        with self._lock:
            return [
                r for r in self._by_actor.values() if role is None or r.role == role
            ]

    def online_actor_ids(self, role: Optional[Role] = None) -> List[str]:
        return [r.actor_id for r in self.registrations(role)]
