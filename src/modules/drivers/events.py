"""Domain events for the Drivers bounded context."""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class DriverOffboarded(DomainEvent):
    """Raised when an admin removes a driver; payload carries ``user_id``."""
