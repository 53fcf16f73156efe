"""Order domain exceptions.

Raised by the Service Layer when business rules are violated.
``modules.core.exceptions.standard_exception_handler`` translates them
into HTTP responses using each class' ``code`` and ``status_code``.
"""

from __future__ import annotations

from rest_framework import status

from modules.core.exceptions import (
    ConflictError,
    DomainError,
    DomainValidationError,
    NotFoundError,
)


class OrderNotFound(NotFoundError):
    """The requested order does not exist or has been soft-deleted."""

    code = "ORDER_NOT_FOUND"


class OrderValidationError(DomainValidationError):
    """Order data is missing or malformed."""

    code = "INVALID_ORDER"


class AlreadyAssignedError(ConflictError):
    """Order already assigned to another driver."""

    code = "ORDER_ALREADY_ASSIGNED"


class InvalidOrderStatus(ConflictError):
    """An invalid delivery status transition was attempted."""

    code = "INVALID_ORDER_STATUS"


class NotAssignedToCaller(DomainError):
    """The order is not assigned to the calling driver."""

    code = "NOT_ASSIGNED_TO_CALLER"
    status_code = status.HTTP_403_FORBIDDEN


class PurgeNotConfirmed(DomainValidationError):
    """Bulk purge requires the explicit confirmation phrase."""

    code = "CONFIRMATION_REQUIRED"
