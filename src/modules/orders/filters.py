import django_filters

from modules.orders.constants import DeliveryStatus, PaymentMode, PaymentStatus
from modules.orders.models import Order


class OrderFilter(django_filters.FilterSet):
    delivery_status = django_filters.ChoiceFilter(choices=DeliveryStatus.choices)
    payment_status = django_filters.ChoiceFilter(choices=PaymentStatus.choices)
    payment_mode = django_filters.ChoiceFilter(choices=PaymentMode.choices)
    driver = django_filters.UUIDFilter(field_name="assigned_driver_id")
    start_date = django_filters.DateFilter(field_name="created_at", lookup_expr="date__gte")
    end_date = django_filters.DateFilter(field_name="created_at", lookup_expr="date__lte")
    min_total = django_filters.NumberFilter(
        field_name="total_amount", lookup_expr="gte"
    )
    max_total = django_filters.NumberFilter(
        field_name="total_amount", lookup_expr="lte"
    )

    class Meta:
        model = Order
        fields = [
            "delivery_status",
            "payment_status",
            "payment_mode",
            "driver",
            "start_date",
            "end_date",
            "min_total",
            "max_total",
        ]
