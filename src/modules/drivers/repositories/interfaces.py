"""Driver repository interface."""

from __future__ import annotations

from abc import abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.drivers.models import DriverProfile


class IDriverRepository(IRepository["DriverProfile"]):
    """Repository contract for driver profiles."""

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> DriverProfile:
        """Create the user account and its profile atomically."""

    @abstractmethod
    def get_by_user_id(self, user_id: Any) -> Optional[DriverProfile]:
        """Profile linked to the given user account."""

    @abstractmethod
    def exists(self, username: str, phone: str) -> bool:
        """Whether a user with *username* or a profile with *phone* exists."""

    @abstractmethod
    def increment_deliveries(self, id: Any) -> None:
        """Add one to both delivery counters without a read-modify-write."""

    @abstractmethod
    def update_location(
        self,
        id: Any,
        latitude: float,
        longitude: float,
        accuracy: Optional[float],
        at: datetime,
    ) -> None:
        """Overwrite the last known location."""

    @abstractmethod
    def clear_stale_locations(self, cutoff: datetime) -> int:
        """Null out locations reported before *cutoff*."""

    @abstractmethod
    def push_tokens(self, exclude_user_ids: Optional[List[Any]] = None) -> List[str]:
        """Push tokens of active drivers, minus the excluded accounts."""

    @abstractmethod
    def count(self) -> int:
        """Number of driver profiles."""
