"""Order, OrderItem, OrderStatusHistory and Transaction models.

Business rules implemented:
- Invalid delivery status transitions rejected (enforced at service layer).
- Each delivery status change generates a history record.
- Order number auto-generated as human-readable identifier.
- The assignment snapshot (driver id, name, phone) is copied from the
  driver profile when the order is claimed or assigned and never changes
  afterwards; it is not a foreign key.
- OrderItem subtotal is always ``quantity * unit_price`` (calculated on save).
- Soft delete via ``deleted_at`` (inherited from RetainedModel); purged later.
- Transaction rows are append-only, one per confirmed delivery.
"""

from __future__ import annotations

import secrets
from decimal import Decimal
from typing import Any

import structlog
from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from modules.core.models import BaseModel, RetainedModel
from modules.orders.constants import (
    ORDER_NUMBER_MAX_RETRIES,
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    DeliveryStatus,
    PaymentMode,
    PaymentStatus,
)
from shared.domain.events import DomainEventMixin

logger = structlog.get_logger(__name__)


class Order(DomainEventMixin, RetainedModel):
    """Order aggregate root: one delivery job.

    ``order_number`` is a human-readable identifier auto-generated on first
    save (format: ``ORD-YYYYMMDD-XXXXXX``).  The UUIDv7 ``id`` is used for
    all internal references and API lookups.
    """

    order_number: models.CharField = models.CharField(
        max_length=20, unique=True, editable=False
    )
    customer_name: models.CharField = models.CharField(max_length=200)
    customer_phone: models.CharField = models.CharField(max_length=20)

    # Delivery address
    address_line: models.CharField = models.CharField(max_length=500)
    city: models.CharField = models.CharField(max_length=100, blank=True, default="")
    pincode: models.CharField = models.CharField(max_length=10, blank=True, default="")
    latitude: models.FloatField = models.FloatField(null=True, blank=True)
    longitude: models.FloatField = models.FloatField(null=True, blank=True)

    total_amount: models.DecimalField = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    payment_mode: models.CharField = models.CharField(
        max_length=10, choices=PaymentMode.choices
    )
    payment_status: models.CharField = models.CharField(
        max_length=10,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
    )
    actual_payment_method: models.CharField = models.CharField(
        max_length=10, blank=True, default=""
    )

    delivery_status: models.CharField = models.CharField(
        max_length=20,
        choices=DeliveryStatus.choices,
        default=DeliveryStatus.PENDING,
    )
    status_updated_at: models.DateTimeField = models.DateTimeField(
        null=True, blank=True
    )

    # Assignment snapshot
    assigned_driver_id: models.UUIDField = models.UUIDField(null=True, blank=True)
    assigned_driver_name: models.CharField = models.CharField(
        max_length=200, blank=True, default=""
    )
    assigned_driver_phone: models.CharField = models.CharField(
        max_length=20, blank=True, default=""
    )
    assigned_at: models.DateTimeField = models.DateTimeField(null=True, blank=True)

    # Completion
    delivered_at: models.DateTimeField = models.DateTimeField(null=True, blank=True)
    delivered_by: models.CharField = models.CharField(
        max_length=200, blank=True, default=""
    )
    delivery_latitude: models.FloatField = models.FloatField(null=True, blank=True)
    delivery_longitude: models.FloatField = models.FloatField(null=True, blank=True)
    delivery_photo: models.TextField = models.TextField(blank=True, default="")
    delivery_notes: models.TextField = models.TextField(blank=True, default="")

    notes: models.TextField = models.TextField(blank=True, default="")

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["delivery_status"], name="orders_status_idx"),
            models.Index(fields=["-created_at"], name="orders_created_idx"),
            models.Index(fields=["assigned_driver_id"], name="orders_driver_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                check=models.Q(total_amount__gt=0),
                name="orders_total_amount_positive",
            ),
        ]

    # ------------------------------------------------------------------
    # State Machine helpers
    # ------------------------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        """Return ``True`` if the order is Delivered or Cancelled."""
        return self.delivery_status in TERMINAL_STATES

    @property
    def is_assigned(self) -> bool:
        return self.assigned_driver_id is not None

    def can_transition_to(self, new_status: str) -> bool:
        """Check whether transitioning to *new_status* is valid."""
        allowed = VALID_TRANSITIONS.get(self.delivery_status, set())
        return new_status in allowed

    def is_assigned_to(self, driver_id: Any) -> bool:
        return self.assigned_driver_id is not None and str(
            self.assigned_driver_id
        ) == str(driver_id)

    # ------------------------------------------------------------------
    # Order number generation
    # ------------------------------------------------------------------

    @staticmethod
    def generate_order_number() -> str:
        """Generate a human-readable order number: ``ORD-YYYYMMDD-XXXXXX``."""
        now = timezone.now()
        suffix = secrets.token_hex(3).upper()
        return f"ORD-{now:%Y%m%d}-{suffix}"

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self.order_number:
            for attempt in range(ORDER_NUMBER_MAX_RETRIES):
                candidate = self.generate_order_number()
                if not Order.objects.filter(order_number=candidate).exists():
                    self.order_number = candidate
                    break
            else:
                raise RuntimeError(
                    f"Failed to generate unique order_number after "
                    f"{ORDER_NUMBER_MAX_RETRIES} attempts"
                )
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.order_number} ({self.delivery_status})"


class OrderItem(BaseModel):
    """Line item of an order.

    Items are free-text (name, quantity, unit price) as entered by the admin.
    ``subtotal`` is always ``quantity * unit_price``, recalculated on every save.
    """

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="items",
    )
    name: models.CharField = models.CharField(max_length=200)
    quantity: models.PositiveIntegerField = models.PositiveIntegerField(
        default=1,
        validators=[MinValueValidator(1)],
    )
    unit_price: models.DecimalField = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    subtotal: models.DecimalField = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        editable=False,
    )

    class Meta:
        db_table = "order_items"
        ordering = ["created_at"]
        constraints = [
            models.CheckConstraint(
                check=models.Q(quantity__gte=1),
                name="order_items_quantity_positive",
            ),
        ]

    def clean(self) -> None:
        super().clean()
        if self.quantity is not None and self.quantity < 1:
            raise ValidationError({"quantity": "Quantity must be at least 1."})

    def save(self, *args: Any, **kwargs: Any) -> None:
        self.subtotal = self.quantity * Decimal(self.unit_price)
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.name} x{self.quantity} ({self.subtotal})"


class OrderStatusHistory(BaseModel):
    """Append-only audit trail for delivery status transitions.

    Inherits ``BaseModel`` (not ``RetainedModel``): audit records are
    immutable.  ``user`` is nullable; ``None`` means the change was made by
    the system.
    """

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="status_history",
    )
    old_status: models.CharField = models.CharField(  # noqa: DJ01
        max_length=20,
        choices=DeliveryStatus.choices,
        null=True,
        blank=True,
    )
    new_status: models.CharField = models.CharField(
        max_length=20,
        choices=DeliveryStatus.choices,
    )
    user: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    notes: models.TextField = models.TextField(blank=True, default="")

    class Meta:
        db_table = "order_status_history"
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["order", "-created_at"],
                name="osh_order_created_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.order} : {self.old_status} -> {self.new_status}"


class Transaction(BaseModel):
    """Payment record written once per confirmed delivery.

    Values are copied from the order at delivery time so the record
    survives retention purges of the order itself.
    """

    order_number: models.CharField = models.CharField(max_length=20, db_index=True)
    amount: models.DecimalField = models.DecimalField(max_digits=10, decimal_places=2)
    payment_mode: models.CharField = models.CharField(max_length=10)
    payment_status: models.CharField = models.CharField(
        max_length=10, choices=PaymentStatus.choices
    )
    driver_id: models.UUIDField = models.UUIDField(null=True, blank=True)
    customer: models.CharField = models.CharField(max_length=200, blank=True, default="")

    class Meta:
        db_table = "transactions"
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.order_number}: {self.amount} ({self.payment_mode})"
