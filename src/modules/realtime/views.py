"""Realtime HTTP views.

Drivers whose channel is down can still report positions over HTTP; admins
can ask the whole fleet for a fresh position.
"""

from __future__ import annotations

from django.apps import apps
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from modules.core.permissions import IsAdmin, IsDriver
from modules.realtime.serializers import LocationReportSerializer


class LocationReportView(APIView):
    """POST /api/v1/driver/location/"""

    permission_classes = [IsDriver]
    throttle_scope = "location_report"

    def post(self, request: Request) -> Response:
        serializer = LocationReportSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        ingest = apps.get_app_config("realtime").ingest_service()
        update = ingest.report_location(
            request.user.pk,
            data.get("latitude"),
            data.get("longitude"),
            data.get("accuracy"),
        )
        return Response(update.to_message()["location"])


class RequestLocationsView(APIView):
    """POST /api/v1/admin/tracking/request-locations/"""

    permission_classes = [IsAdmin]

    def post(self, request: Request) -> Response:
        service = apps.get_app_config("realtime").location_request_service()
        return Response(service.request_locations())
