"""Driver API views.

Exposes ``DriverService`` via HTTP.  Domain exceptions propagate to
``standard_exception_handler``, which renders them with their status code.
"""

from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework.viewsets import GenericViewSet

from modules.core.permissions import IsAdmin, IsDriver
from modules.drivers.dtos import CreateDriverDTO, UpdateProfileDTO
from modules.drivers.models import DriverProfile
from modules.drivers.repositories.django_repository import DriverDjangoRepository
from modules.drivers.serializers import (
    CreateDriverSerializer,
    DriverSerializer,
    PushTokenSerializer,
    UpdateProfileSerializer,
)
from modules.drivers.services import DriverService


def _service() -> DriverService:
    return DriverService(repository=DriverDjangoRepository())


class AdminDriverViewSet(GenericViewSet):
    """Admin management of the driver fleet."""

    permission_classes = [IsAdmin]
    queryset = DriverProfile.objects.all()
    serializer_class = DriverSerializer
    search_fields = ["name", "phone", "user__username"]
    ordering_fields = ["name", "created_at", "completed_deliveries"]
    ordering = ["name"]
    filter_backends = [SearchFilter, OrderingFilter]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = _service()

    def get_queryset(self):
        return self._service.list_drivers()

    def list(self, request: Request) -> Response:
        """GET /api/v1/admin/drivers/"""
        queryset = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(queryset)
        serializer = DriverSerializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/admin/drivers/{pk}/"""
        profile = self._service.get_driver(pk)
        return Response(DriverSerializer(profile).data)

    def create(self, request: Request) -> Response:
        """POST /api/v1/admin/drivers/"""
        serializer = CreateDriverSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        dto = CreateDriverDTO(
            username=data["username"],
            name=data["name"],
            phone=data["phone"],
            password=data.get("password") or None,
        )
        profile = self._service.onboard(dto)
        return Response(DriverSerializer(profile).data, status=status.HTTP_201_CREATED)

    def destroy(self, request: Request, pk: str | None = None) -> Response:
        """DELETE /api/v1/admin/drivers/{pk}/"""
        self._service.offboard(pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=["get"], url_path="status")
    def fleet_status(self, request: Request) -> Response:
        """GET /api/v1/admin/drivers/status/"""
        rows = self._service.fleet_status()
        return Response([row.model_dump(mode="json") for row in rows])


class DriverProfileView(APIView):
    """GET/PATCH /api/v1/driver/profile/"""

    permission_classes = [IsDriver]

    def get(self, request: Request) -> Response:
        profile = _service().get_profile(request.user.pk)
        return Response(DriverSerializer(profile).data)

    def patch(self, request: Request) -> Response:
        serializer = UpdateProfileSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = UpdateProfileDTO(**serializer.validated_data)
        profile = _service().update_profile(request.user.pk, dto)
        return Response(DriverSerializer(profile).data)


class PushTokenView(APIView):
    """POST /api/v1/driver/push-token/"""

    permission_classes = [IsDriver]

    def post(self, request: Request) -> Response:
        serializer = PushTokenSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        _service().register_push_token(
            request.user.pk, serializer.validated_data["token"]
        )
        return Response({"registered": True})
