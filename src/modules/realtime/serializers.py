"""Realtime DRF serializers."""

from rest_framework import serializers


class LocationReportSerializer(serializers.Serializer):
    # Presence and range are checked by the ingest service so HTTP and
    # channel reports fail with the same codes.
    latitude = serializers.FloatField(required=False, allow_null=True)
    longitude = serializers.FloatField(required=False, allow_null=True)
    accuracy = serializers.FloatField(required=False, allow_null=True)
