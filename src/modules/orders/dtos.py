"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF Serializers)
and the Service layer.  DTOs are immutable (``frozen=True``).

- ``OrderItemDTO``: a single free-text line item.
- ``DeliveryAddressDTO``: where the order goes.
- ``CreateOrderDTO``: input for order creation.
- ``UpdateOrderDTO``: admin edit; only provided fields change.
- ``CompleteOrderDTO``: delivery confirmation sent by the driver.
- ``DashboardDTO``: admin dashboard counters.
- ``RevenueReportDTO``: revenue by payment mode plus a daily chart.
- ``OrderOutputDTO``: camelCase order snapshot pushed over channels.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from modules.orders.constants import PaymentMode

if TYPE_CHECKING:
    from modules.orders.models import Order

# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class OrderItemDTO(BaseModel):
    """Immutable DTO for a single order line."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    quantity: int = 1
    unit_price: Decimal = Decimal("0.00")

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v

    @field_validator("unit_price")
    @classmethod
    def price_must_not_be_negative(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("Unit price cannot be negative.")
        return v


class DeliveryAddressDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    address_line: str = Field(min_length=1)
    city: str = ""
    pincode: str = ""
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)


class CreateOrderDTO(BaseModel):
    """Immutable DTO for order creation requests.

    Validates:
    - customer name and phone are present.
    - ``items`` must contain at least one item.
    - ``total_amount`` is strictly positive.
    - ``payment_mode`` is one of Cash, Card, UPI, Paid.
    """

    model_config = ConfigDict(frozen=True)

    customer_name: str = Field(min_length=1)
    customer_phone: str = Field(min_length=1)
    items: List[OrderItemDTO]
    address: DeliveryAddressDTO
    total_amount: Decimal
    payment_mode: PaymentMode
    notes: Optional[str] = ""

    @field_validator("customer_name", "customer_phone")
    @classmethod
    def must_not_be_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Field must not be blank.")
        return v.strip()

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(cls, v: List[OrderItemDTO]) -> List[OrderItemDTO]:
        if not v:
            raise ValueError("Order must have at least one item.")
        return v

    @field_validator("total_amount")
    @classmethod
    def total_must_be_positive(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError("Total amount must be greater than zero.")
        return v


class UpdateOrderDTO(BaseModel):
    """Admin edit of a non-terminal order; ``None`` means unchanged."""

    model_config = ConfigDict(frozen=True)

    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    items: Optional[List[OrderItemDTO]] = None
    address: Optional[DeliveryAddressDTO] = None
    total_amount: Optional[Decimal] = None
    payment_mode: Optional[PaymentMode] = None
    notes: Optional[str] = None

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(
        cls, v: Optional[List[OrderItemDTO]]
    ) -> Optional[List[OrderItemDTO]]:
        if v is not None and not v:
            raise ValueError("Order must have at least one item.")
        return v

    @field_validator("total_amount")
    @classmethod
    def total_must_be_positive(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        if v is not None and v <= 0:
            raise ValueError("Total amount must be greater than zero.")
        return v


class CompleteOrderDTO(BaseModel):
    """Delivery confirmation from the owning driver."""

    model_config = ConfigDict(frozen=True)

    payment_method: Optional[PaymentMode] = None
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    photo: str = ""
    notes: str = ""


# ---------------------------------------------------------------------------
# Output DTOs
# ---------------------------------------------------------------------------


class DashboardDTO(BaseModel):
    """Immutable DTO for the admin dashboard counters."""

    model_config = ConfigDict(frozen=True)

    total_orders: int
    pending_orders: int
    delivered_orders: int
    total_revenue: Decimal
    total_drivers: int


class PaymentModeRevenueDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: Decimal
    count: int


class DailyRevenueDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    day: date = Field(serialization_alias="date")
    revenue: Decimal


class RevenueReportDTO(BaseModel):
    """Completed-payment revenue for a period.

    ``payment_methods`` breaks the total down by the order's payment mode;
    ``chart`` always covers the last seven local days regardless of period.
    """

    model_config = ConfigDict(frozen=True)

    period: str
    total_revenue: Decimal
    payment_methods: Dict[str, PaymentModeRevenueDTO]
    chart: List[DailyRevenueDTO]


class _CamelModel(BaseModel):
    """Output models dumped with camelCase keys for channel messages."""

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )


class OrderItemOutputDTO(_CamelModel):
    name: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal


class DeliveryAddressOutputDTO(_CamelModel):
    address_line: str
    city: str
    pincode: str
    latitude: Optional[float]
    longitude: Optional[float]


class AssignedDriverDTO(_CamelModel):
    id: UUID
    name: str
    phone: str


class OrderOutputDTO(_CamelModel):
    """Snapshot of an order as pushed to connected clients."""

    id: UUID
    order_number: str
    customer_name: str
    customer_phone: str
    items: List[OrderItemOutputDTO]
    delivery_address: DeliveryAddressOutputDTO
    total_amount: Decimal
    payment_mode: str
    payment_status: str
    actual_payment_method: str
    delivery_status: str
    assigned_driver: Optional[AssignedDriverDTO]
    assigned_at: Optional[datetime]
    delivered_at: Optional[datetime]
    delivered_by: str
    notes: str
    created_at: datetime

    @classmethod
    def from_entity(cls, order: Order) -> OrderOutputDTO:
        """Build an output DTO from an Order model instance.

        Assumes ``items`` is prefetched or cheap to load.
        """
        assigned = None
        if order.assigned_driver_id is not None:
            assigned = AssignedDriverDTO(
                id=order.assigned_driver_id,
                name=order.assigned_driver_name,
                phone=order.assigned_driver_phone,
            )
        return cls(
            id=order.id,
            order_number=order.order_number,
            customer_name=order.customer_name,
            customer_phone=order.customer_phone,
            items=[
                OrderItemOutputDTO(
                    name=item.name,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    subtotal=item.subtotal,
                )
                for item in order.items.all()
            ],
            delivery_address=DeliveryAddressOutputDTO(
                address_line=order.address_line,
                city=order.city,
                pincode=order.pincode,
                latitude=order.latitude,
                longitude=order.longitude,
            ),
            total_amount=order.total_amount,
            payment_mode=order.payment_mode,
            payment_status=order.payment_status,
            actual_payment_method=order.actual_payment_method,
            delivery_status=order.delivery_status,
            assigned_driver=assigned,
            assigned_at=order.assigned_at,
            delivered_at=order.delivered_at,
            delivered_by=order.delivered_by,
            notes=order.notes,
            created_at=order.created_at,
        )

    def to_message(self, include: Optional[set] = None) -> Dict[str, Any]:
        """JSON-safe camelCase dict for channel payloads."""
        return self.model_dump(mode="json", by_alias=True, include=include)
