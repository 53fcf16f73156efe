"""Driver domain exceptions."""

from __future__ import annotations

from modules.core.exceptions import ConflictError, DomainValidationError, NotFoundError


class DriverNotFound(NotFoundError):
    """Delivery driver profile not found."""

    code = "PROFILE_NOT_FOUND"


class DriverAlreadyExists(ConflictError):
    """A driver with this username or phone already exists."""

    code = "DRIVER_EXISTS"


class InactiveDriver(ConflictError):
    """The driver is inactive and cannot take orders."""

    code = "DRIVER_INACTIVE"


class DriverValidationError(DomainValidationError):
    """Driver data is missing or malformed."""

    code = "INVALID_DRIVER"
