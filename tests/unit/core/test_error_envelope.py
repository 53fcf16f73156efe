"""Unit tests for the standard API error envelope."""

import pytest
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from rest_framework.exceptions import NotAuthenticated, ValidationError

from modules.core.exceptions import (
    ConflictError,
    DomainError,
    NotFoundError,
    standard_exception_handler,
)
from modules.orders.exceptions import AlreadyAssignedError, NotAssignedToCaller
from modules.realtime.exceptions import LowAccuracy

pytestmark = pytest.mark.unit


class _Point(BaseModel):
    latitude: float


class TestDomainErrors:
    @pytest.mark.parametrize(
        "exc, status_code, code",
        [
            (AlreadyAssignedError(), 409, "ORDER_ALREADY_ASSIGNED"),
            (NotAssignedToCaller(), 403, "NOT_ASSIGNED_TO_CALLER"),
            (LowAccuracy("too vague"), 400, "LOW_ACCURACY"),
            (NotFoundError(), 404, "NOT_FOUND"),
        ],
    )
    def test_rendered_with_code_and_status(self, exc, status_code, code):
        response = standard_exception_handler(exc, {})

        assert response.status_code == status_code
        assert response.data["type"] == "client_error"
        assert response.data["errors"][0]["code"] == code
        assert response.data["errors"][0]["attr"] is None

    def test_message_defaults_to_docstring(self):
        assert AlreadyAssignedError().detail

    def test_code_can_be_overridden(self):
        exc = ConflictError("busy", code="CUSTOM")
        assert standard_exception_handler(exc, {}).data["errors"] == [
            {"code": "CUSTOM", "detail": "busy", "attr": None}
        ]

    def test_server_error_type(self):
        class Broken(DomainError):
            status_code = 503

        assert standard_exception_handler(Broken(), {}).data["type"] == "server_error"


class TestFrameworkErrors:
    def test_drf_validation_error_is_flattened(self):
        exc = ValidationError({"items": [{"name": ["This field is required."]}]})

        response = standard_exception_handler(exc, {})

        assert response.status_code == 400
        assert response.data["type"] == "validation_error"
        assert response.data["errors"] == [
            {
                "code": "invalid",
                "detail": "This field is required.",
                "attr": "items.0.name",
            }
        ]

    def test_drf_auth_error(self):
        response = standard_exception_handler(NotAuthenticated(), {})

        assert response.status_code == 401
        assert response.data["type"] == "client_error"
        assert response.data["errors"][0]["code"] == "not_authenticated"

    def test_pydantic_error(self):
        with pytest.raises(PydanticValidationError) as exc_info:
            _Point(latitude="north")

        response = standard_exception_handler(exc_info.value, {})

        assert response.status_code == 400
        assert response.data["type"] == "validation_error"
        assert response.data["errors"][0]["attr"] == "latitude"

    def test_unknown_exceptions_are_not_handled(self):
        assert standard_exception_handler(KeyError("x"), {}) is None
