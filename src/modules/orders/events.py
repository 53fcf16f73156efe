"""Domain events for the Orders bounded context.

Each event carries a ``payload`` snapshot built by the service while the
order row is still in hand; realtime handlers forward it verbatim.
"""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderCreated(DomainEvent):
    """Raised when an admin creates an order."""


@dataclass(frozen=True)
class OrderTaken(DomainEvent):
    """Raised when a driver claims a pending order."""


@dataclass(frozen=True)
class OrderAssigned(DomainEvent):
    """Raised when an admin assigns a pending order to a driver."""


@dataclass(frozen=True)
class OrderStarted(DomainEvent):
    """Raised when the owning driver starts the delivery."""


@dataclass(frozen=True)
class OrderDelivered(DomainEvent):
    """Raised when the owning driver confirms delivery."""


@dataclass(frozen=True)
class OrderUpdated(DomainEvent):
    """Raised when an admin edits an order."""


@dataclass(frozen=True)
class OrderCancelled(DomainEvent):
    """Raised when an order is cancelled."""
