"""Order domain constants.

Defines delivery/payment choices and the valid delivery status
transitions of the order state machine.
"""

from django.db import models


class DeliveryStatus(models.TextChoices):
    PENDING = "Pending", "Pending"
    ASSIGNED = "Assigned", "Assigned"
    IN_TRANSIT = "In Transit", "In Transit"
    DELIVERED = "Delivered", "Delivered"
    CANCELLED = "Cancelled", "Cancelled"


class PaymentMode(models.TextChoices):
    CASH = "Cash", "Cash"
    CARD = "Card", "Card"
    UPI = "UPI", "UPI"
    PAID = "Paid", "Prepaid"


class PaymentStatus(models.TextChoices):
    PENDING = "Pending", "Pending"
    COMPLETED = "Completed", "Completed"
    FAILED = "Failed", "Failed"


VALID_TRANSITIONS: dict[str, set[str]] = {
    DeliveryStatus.PENDING: {DeliveryStatus.ASSIGNED, DeliveryStatus.CANCELLED},
    DeliveryStatus.ASSIGNED: {DeliveryStatus.IN_TRANSIT, DeliveryStatus.DELIVERED},
    DeliveryStatus.IN_TRANSIT: {DeliveryStatus.DELIVERED},
    DeliveryStatus.DELIVERED: set(),
    DeliveryStatus.CANCELLED: set(),
}

TERMINAL_STATES: set[str] = {DeliveryStatus.DELIVERED, DeliveryStatus.CANCELLED}

# Statuses from which the owning driver may confirm delivery.
COMPLETABLE_STATES: set[str] = {DeliveryStatus.ASSIGNED, DeliveryStatus.IN_TRANSIT}


def payment_status_for(mode: str) -> str:
    """Payment status an order starts with for the given payment mode."""
    if mode == PaymentMode.PAID:
        return PaymentStatus.COMPLETED
    return PaymentStatus.PENDING


PURGE_CONFIRMATION = "DELETE_ALL_DATA"

ORDER_NUMBER_MAX_RETRIES = 5


class RevenuePeriod(models.TextChoices):
    TODAY = "today", "Today"
    WEEK = "week", "Last 7 days"
    MONTH = "month", "Last 30 days"
    ALL = "all", "All time"


# Days shown in the revenue report's daily chart, today included.
REVENUE_CHART_DAYS = 7
