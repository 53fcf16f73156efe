"""Driver DTOs for the Service Layer (Pydantic v2, immutable)."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CreateDriverDTO(BaseModel):
    """Onboarding request.

    ``password`` is optional; the service falls back to
    ``DRIVER_DEFAULT_PASSWORD``.
    """

    model_config = ConfigDict(frozen=True)

    username: str = Field(min_length=3, max_length=150)
    name: str = Field(min_length=1, max_length=200)
    phone: str = Field(min_length=6, max_length=20)
    password: Optional[str] = None

    @field_validator("username", "name", "phone")
    @classmethod
    def strip(cls, v: str) -> str:
        return v.strip()


class UpdateProfileDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    phone: Optional[str] = Field(default=None, min_length=6, max_length=20)


class DriverStatusDTO(BaseModel):
    """One row of the admin fleet-status view."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    phone: str
    status: str
    has_push_token: bool
    last_location_at: Optional[datetime]
    location_age_minutes: Optional[int]
    location_is_fresh: bool
