"""Django ORM implementation of the Driver repository.

Error handling follows the Null Object pattern: look-ups return ``None``
instead of raising; the Service Layer decides how to translate a missing
profile into an error.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

import structlog
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import F, Q

from modules.drivers.constants import DriverStatus
from modules.drivers.models import DriverProfile
from modules.drivers.repositories.interfaces import IDriverRepository

logger = structlog.get_logger(__name__)


def _user_pks(values: List[Any]) -> List[Any]:
    """Keep the values that are valid user primary keys; drop the rest."""
    pk_field = get_user_model()._meta.pk
    pks = []
    for value in values:
        try:
            pks.append(pk_field.to_python(value))
        except ValidationError:
            logger.warning("driver.invalid_user_id", value=str(value))
    return pks


class DriverDjangoRepository(IDriverRepository):
    """Concrete Driver repository backed by Django ORM."""

    @transaction.atomic
    def create(self, data: Dict[str, Any]) -> DriverProfile:
        """Create the login account and the profile.

        ``data`` keys: ``username``, ``password``, ``name``, ``phone``.
        """
        user = get_user_model().objects.create_user(
            username=data["username"],
            password=data["password"],
            first_name=data["name"],
        )
        profile = DriverProfile.objects.create(
            user=user,
            name=data["name"],
            phone=data["phone"],
        )
        logger.info("driver.created", driver_id=str(profile.id))
        return profile

    def get_by_id(self, id: str) -> Optional[DriverProfile]:
        try:
            return DriverProfile.objects.select_related("user").filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_by_user_id(self, user_id: Any) -> Optional[DriverProfile]:
        try:
            return (
                DriverProfile.objects.select_related("user").filter(user_id=user_id).first()
            )
        except (ValueError, ValidationError):
            return None

    def exists(self, username: str, phone: str) -> bool:
        if get_user_model().objects.filter(username=username).exists():
            return True
        return DriverProfile.objects.filter(phone=phone).exists()

    def list(self, filters: Optional[Dict[str, Any]] = None):
        queryset = DriverProfile.objects.select_related("user")
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    def count(self) -> int:
        return DriverProfile.objects.count()

    @transaction.atomic
    def save(self, entity: DriverProfile) -> DriverProfile:
        entity.save()
        logger.info("driver.saved", driver_id=str(entity.id))
        return entity

    @transaction.atomic
    def delete(self, id: str) -> bool:
        """Delete the profile and deactivate its login account."""
        profile = self.get_by_id(id)
        if not profile:
            return False
        user = profile.user
        profile.delete()
        user.is_active = False
        user.save(update_fields=["is_active"])
        logger.info("driver.deleted", driver_id=str(id), user_id=str(user.pk))
        return True

    def increment_deliveries(self, id: Any) -> None:
        DriverProfile.objects.filter(id=id).update(
            total_deliveries=F("total_deliveries") + 1,
            completed_deliveries=F("completed_deliveries") + 1,
        )

    def update_location(
        self,
        id: Any,
        latitude: float,
        longitude: float,
        accuracy: Optional[float],
        at: datetime,
    ) -> None:
        DriverProfile.objects.filter(id=id).update(
            last_latitude=latitude,
            last_longitude=longitude,
            last_accuracy=accuracy,
            last_location_at=at,
            updated_at=at,
        )

    def clear_stale_locations(self, cutoff: datetime) -> int:
        return DriverProfile.objects.filter(last_location_at__lt=cutoff).update(
            last_latitude=None,
            last_longitude=None,
            last_accuracy=None,
            last_location_at=None,
        )

    def push_tokens(self, exclude_user_ids: Optional[List[Any]] = None) -> List[str]:
        queryset = DriverProfile.objects.filter(status=DriverStatus.ACTIVE).exclude(
            Q(push_token="") | Q(push_token__isnull=True)
        )
        if exclude_user_ids:
            queryset = queryset.exclude(user_id__in=_user_pks(exclude_user_ids))
        return list(queryset.values_list("push_token", flat=True))
