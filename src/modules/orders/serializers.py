"""Order DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from modules.orders.constants import PaymentMode, RevenuePeriod
from modules.orders.models import Order, OrderItem, OrderStatusHistory

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class OrderItemInputSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    quantity = serializers.IntegerField(min_value=1, default=1)
    unit_price = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=Decimal("0"), default=Decimal("0")
    )


class DeliveryAddressSerializer(serializers.Serializer):
    address_line = serializers.CharField(max_length=500)
    city = serializers.CharField(max_length=100, required=False, default="", allow_blank=True)
    pincode = serializers.CharField(max_length=10, required=False, default="", allow_blank=True)
    latitude = serializers.FloatField(
        required=False, allow_null=True, default=None, min_value=-90, max_value=90
    )
    longitude = serializers.FloatField(
        required=False, allow_null=True, default=None, min_value=-180, max_value=180
    )


class CreateOrderSerializer(serializers.Serializer):
    """Validates the order creation request payload."""

    customer_name = serializers.CharField(max_length=200)
    customer_phone = serializers.CharField(max_length=20)
    items = OrderItemInputSerializer(many=True, allow_empty=False)
    delivery_address = DeliveryAddressSerializer()
    total_amount = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=Decimal("0.01")
    )
    payment_mode = serializers.ChoiceField(choices=PaymentMode.choices)
    notes = serializers.CharField(required=False, default="", allow_blank=True)


class UpdateOrderSerializer(serializers.Serializer):
    """Partial admin edit; every field is optional."""

    customer_name = serializers.CharField(max_length=200, required=False)
    customer_phone = serializers.CharField(max_length=20, required=False)
    items = OrderItemInputSerializer(many=True, allow_empty=False, required=False)
    delivery_address = DeliveryAddressSerializer(required=False)
    total_amount = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=Decimal("0.01"), required=False
    )
    payment_mode = serializers.ChoiceField(choices=PaymentMode.choices, required=False)
    notes = serializers.CharField(required=False, allow_blank=True)


class AssignOrderSerializer(serializers.Serializer):
    driver_id = serializers.UUIDField()


class CancelOrderSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, default="", allow_blank=True)


class PurgeSerializer(serializers.Serializer):
    confirmation = serializers.CharField()


class DeliveryHistoryQuerySerializer(serializers.Serializer):
    """Query parameters of the admin delivery history."""

    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)
    driver = serializers.UUIDField(required=False)

    def to_filters(self) -> dict:
        data = self.validated_data
        lookups = {
            "start_date": "delivered_at__date__gte",
            "end_date": "delivered_at__date__lte",
            "driver": "assigned_driver_id",
        }
        return {lookups[key]: value for key, value in data.items()}


class RevenueQuerySerializer(serializers.Serializer):
    period = serializers.ChoiceField(
        choices=RevenuePeriod.choices, default=RevenuePeriod.ALL
    )


class CompleteOrderSerializer(serializers.Serializer):
    payment_method = serializers.ChoiceField(
        choices=PaymentMode.choices, required=False, allow_null=True, default=None
    )
    latitude = serializers.FloatField(
        required=False, allow_null=True, default=None, min_value=-90, max_value=90
    )
    longitude = serializers.FloatField(
        required=False, allow_null=True, default=None, min_value=-180, max_value=180
    )
    photo = serializers.CharField(required=False, default="", allow_blank=True)
    notes = serializers.CharField(required=False, default="", allow_blank=True)


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class OrderItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderItem
        fields = ["id", "name", "quantity", "unit_price", "subtotal"]
        read_only_fields = fields


class StatusHistorySerializer(serializers.ModelSerializer):
    """Read serializer for order status history records."""

    class Meta:
        model = OrderStatusHistory
        fields = [
            "id",
            "old_status",
            "new_status",
            "notes",
            "created_at",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Read serializer for orders with nested items and history."""

    items = OrderItemSerializer(many=True, read_only=True)
    status_history = StatusHistorySerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "customer_name",
            "customer_phone",
            "address_line",
            "city",
            "pincode",
            "latitude",
            "longitude",
            "total_amount",
            "payment_mode",
            "payment_status",
            "actual_payment_method",
            "delivery_status",
            "status_updated_at",
            "assigned_driver_id",
            "assigned_driver_name",
            "assigned_driver_phone",
            "assigned_at",
            "delivered_at",
            "delivered_by",
            "delivery_latitude",
            "delivery_longitude",
            "delivery_photo",
            "delivery_notes",
            "notes",
            "created_at",
            "updated_at",
            "items",
            "status_history",
        ]
        read_only_fields = fields


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for order lists (no history)."""

    items = OrderItemSerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "customer_name",
            "customer_phone",
            "address_line",
            "city",
            "total_amount",
            "payment_mode",
            "payment_status",
            "delivery_status",
            "assigned_driver_id",
            "assigned_driver_name",
            "delivered_at",
            "created_at",
            "items",
        ]
        read_only_fields = fields
