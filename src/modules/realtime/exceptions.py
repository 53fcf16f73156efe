"""Realtime exceptions.

``ChannelUnavailable`` never reaches an API caller: the broadcast router
absorbs it.  The location errors are regular domain errors.
"""

from __future__ import annotations

from modules.core.exceptions import DomainValidationError


class ChannelUnavailable(Exception):
    """The channel is closed or its event loop has gone away."""


class MissingCoordinates(DomainValidationError):
    """Latitude and longitude are required."""

    code = "MISSING_LOCATION"


class InvalidCoordinates(DomainValidationError):
    """Latitude must be within +/-90 and longitude within +/-180."""

    code = "INVALID_LOCATION"


class LowAccuracy(DomainValidationError):
    """Location accuracy too low."""

    code = "LOW_ACCURACY"
