"""Driver DRF serializers for API input/output."""

from __future__ import annotations

from rest_framework import serializers

from modules.drivers.models import DriverProfile


class CreateDriverSerializer(serializers.Serializer):
    username = serializers.CharField(min_length=3, max_length=150)
    name = serializers.CharField(max_length=200)
    phone = serializers.CharField(min_length=6, max_length=20)
    password = serializers.CharField(
        required=False, allow_blank=True, write_only=True, min_length=6
    )


class UpdateProfileSerializer(serializers.Serializer):
    name = serializers.CharField(required=False, max_length=200)
    phone = serializers.CharField(required=False, min_length=6, max_length=20)


class PushTokenSerializer(serializers.Serializer):
    token = serializers.CharField(max_length=255)


class DriverSerializer(serializers.ModelSerializer):
    """Read serializer for driver profiles."""

    username = serializers.CharField(source="user.username", read_only=True)
    has_push_token = serializers.SerializerMethodField()
    last_location = serializers.SerializerMethodField()

    class Meta:
        model = DriverProfile
        fields = [
            "id",
            "username",
            "name",
            "phone",
            "status",
            "total_deliveries",
            "completed_deliveries",
            "has_push_token",
            "last_location",
            "created_at",
        ]
        read_only_fields = fields

    def get_has_push_token(self, obj: DriverProfile) -> bool:
        return bool(obj.push_token)

    def get_last_location(self, obj: DriverProfile):
        if not obj.has_fresh_location():
            return None
        location = obj.last_location
        return {
            "latitude": location["latitude"],
            "longitude": location["longitude"],
            "accuracy": location["accuracy"],
            "updated_at": location["updated_at"].isoformat(),
        }
