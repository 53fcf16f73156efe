"""Driver service layer (Use Cases).

Onboarding/offboarding by admins, self-service profile and push token
management by drivers, and the fleet status read model.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, List, Optional

import structlog
from django.conf import settings
from django.db import transaction
from django.utils import timezone

from modules.drivers.dtos import DriverStatusDTO
from modules.drivers.events import DriverOffboarded
from modules.drivers.exceptions import (
    DriverAlreadyExists,
    DriverNotFound,
    DriverValidationError,
)
from shared.infrastructure.bus import event_bus as default_event_bus
from shared.infrastructure.bus import publish_on_commit

if TYPE_CHECKING:
    from modules.drivers.dtos import CreateDriverDTO, UpdateProfileDTO
    from modules.drivers.models import DriverProfile
    from modules.drivers.repositories.interfaces import IDriverRepository
    from shared.domain.bus import IEventBus

logger = structlog.get_logger(__name__)


class DriverService:
    """Application service for driver use-cases.

    Receives an ``IDriverRepository`` via constructor injection (DIP).
    """

    def __init__(
        self,
        repository: IDriverRepository,
        event_bus: Optional[IEventBus] = None,
    ) -> None:
        self._repo = repository
        self._bus = event_bus or default_event_bus

    # ------------------------------------------------------------------
    # Admin commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def onboard(self, dto: CreateDriverDTO) -> DriverProfile:
        """Create a driver login account and profile.

        Raises:
            DriverAlreadyExists: username or phone already taken.
            DriverValidationError: no password given and no default configured.
        """
        log = logger.bind(username=dto.username)

        if self._repo.exists(dto.username, dto.phone):
            log.warning("driver.duplicate")
            raise DriverAlreadyExists()

        password = dto.password or settings.DRIVER_DEFAULT_PASSWORD
        if not password:
            raise DriverValidationError("A password is required.")

        profile = self._repo.create(
            {
                "username": dto.username,
                "password": password,
                "name": dto.name,
                "phone": dto.phone,
            }
        )
        log.info("driver.onboarded", driver_id=str(profile.id))
        return profile

    @transaction.atomic
    def offboard(self, driver_id: str) -> None:
        """Remove the profile, disable the account and log out live sessions.

        Raises:
            DriverNotFound: no profile with this id.
        """
        profile = self._repo.get_by_id(driver_id)
        if not profile:
            raise DriverNotFound()

        profile.add_domain_event(
            DriverOffboarded(
                aggregate_id=profile.id,
                payload={"user_id": str(profile.user_id), "name": profile.name},
            )
        )
        self._repo.delete(str(profile.id))
        publish_on_commit(self._bus, profile)
        logger.info("driver.offboarded", driver_id=str(driver_id))

    # ------------------------------------------------------------------
    # Driver self-service
    # ------------------------------------------------------------------

    def get_profile(self, user_id: Any) -> DriverProfile:
        """Profile of the calling driver.

        Raises:
            DriverNotFound: the account has no driver profile.
        """
        profile = self._repo.get_by_user_id(user_id)
        if not profile:
            raise DriverNotFound()
        return profile

    @transaction.atomic
    def update_profile(self, user_id: Any, dto: UpdateProfileDTO) -> DriverProfile:
        profile = self.get_profile(user_id)

        if dto.phone is not None and dto.phone != profile.phone:
            if self._repo.list({"phone": dto.phone}).exclude(id=profile.id).exists():
                raise DriverAlreadyExists("Phone number already registered.")
            profile.phone = dto.phone
        if dto.name is not None:
            profile.name = dto.name

        profile = self._repo.save(profile)
        logger.info("driver.profile_updated", driver_id=str(profile.id))
        return profile

    def register_push_token(self, user_id: Any, token: str) -> DriverProfile:
        if not token or not token.strip():
            raise DriverValidationError("Push token is required.")
        profile = self.get_profile(user_id)
        profile.push_token = token.strip()
        profile = self._repo.save(profile)
        logger.info("driver.push_token_registered", driver_id=str(profile.id))
        return profile

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_driver(self, driver_id: str) -> DriverProfile:
        profile = self._repo.get_by_id(driver_id)
        if not profile:
            raise DriverNotFound()
        return profile

    def list_drivers(self):
        return self._repo.list()

    def fleet_status(self) -> List[DriverStatusDTO]:
        """Push-token presence and location freshness for every driver."""
        now = timezone.now()
        return [
            DriverStatusDTO(
                id=str(profile.id),
                name=profile.name,
                phone=profile.phone,
                status=profile.status,
                has_push_token=bool(profile.push_token),
                last_location_at=profile.last_location_at,
                location_age_minutes=profile.location_age_minutes(now),
                location_is_fresh=profile.has_fresh_location(now),
            )
            for profile in self._repo.list()
        ]
