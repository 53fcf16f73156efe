"""Order service layer (Use Cases).

Orchestrates the order lifecycle: creation by admins, claim or assignment,
delivery by the owning driver, edits, cancellation and purges.  All write
operations are atomic; the service defines the unit-of-work boundary.

Business rules enforced:
- Payment status is derived from the payment mode at creation and on
  mode changes (``payment_status_for``), and completed on delivery.
- Claim/assign exclusivity: a single conditional update succeeds only
  while the order is Pending and unassigned.
- Only the driver in the assignment snapshot may start or complete it.
- Delivery status transitions follow ``VALID_TRANSITIONS``.
- Every status change is recorded in the status history.

Domain events are published through the event bus after the transaction
commits.  Handler failures are absorbed by the bus and never roll back
the mutation.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, Optional

import structlog
from django.conf import settings
from django.db import transaction
from django.utils import timezone

from modules.drivers.exceptions import DriverNotFound, InactiveDriver
from modules.orders.constants import (
    COMPLETABLE_STATES,
    PURGE_CONFIRMATION,
    REVENUE_CHART_DAYS,
    TERMINAL_STATES,
    DeliveryStatus,
    PaymentStatus,
    RevenuePeriod,
    payment_status_for,
)
from modules.orders.dtos import (
    DailyRevenueDTO,
    DashboardDTO,
    OrderOutputDTO,
    PaymentModeRevenueDTO,
    RevenueReportDTO,
)
from modules.orders.events import (
    OrderAssigned,
    OrderCancelled,
    OrderCreated,
    OrderDelivered,
    OrderStarted,
    OrderTaken,
    OrderUpdated,
)
from modules.orders.exceptions import (
    AlreadyAssignedError,
    InvalidOrderStatus,
    NotAssignedToCaller,
    OrderNotFound,
    PurgeNotConfirmed,
)
from shared.infrastructure.bus import event_bus as default_event_bus
from shared.infrastructure.bus import publish_on_commit

if TYPE_CHECKING:
    from modules.drivers.models import DriverProfile
    from modules.drivers.repositories.interfaces import IDriverRepository
    from modules.orders.dtos import CompleteOrderDTO, CreateOrderDTO, UpdateOrderDTO
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository
    from shared.domain.bus import IEventBus

logger = structlog.get_logger(__name__)


def _start_of_day(day: date) -> datetime:
    return timezone.make_aware(datetime.combine(day, time.min))

OPEN_STATES = [
    DeliveryStatus.PENDING,
    DeliveryStatus.ASSIGNED,
    DeliveryStatus.IN_TRANSIT,
]

DELIVERED_FIELDS = {
    "id",
    "order_number",
    "delivery_status",
    "payment_status",
    "payment_mode",
    "actual_payment_method",
    "delivered_at",
    "delivered_by",
}


class OrderService:
    """Application service for Order use-cases.

    Receives repositories and the event bus via constructor injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        driver_repository: IDriverRepository,
        event_bus: Optional[IEventBus] = None,
    ) -> None:
        self._order_repo = order_repository
        self._driver_repo = driver_repository
        self._bus = event_bus or default_event_bus

    # ------------------------------------------------------------------
    # Admin commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_order(self, dto: CreateOrderDTO, user_id: Any = None) -> Order:
        """Create a Pending order and announce it to drivers."""
        log = logger.bind(customer=dto.customer_name, payment_mode=dto.payment_mode)
        log.info("order.creation_started")

        now = timezone.now()
        order = self._order_repo.create(
            {
                "customer_name": dto.customer_name,
                "customer_phone": dto.customer_phone,
                "address_line": dto.address.address_line,
                "city": dto.address.city,
                "pincode": dto.address.pincode,
                "latitude": dto.address.latitude,
                "longitude": dto.address.longitude,
                "total_amount": dto.total_amount,
                "payment_mode": dto.payment_mode,
                "payment_status": payment_status_for(dto.payment_mode),
                "delivery_status": DeliveryStatus.PENDING,
                "status_updated_at": now,
                "notes": dto.notes or "",
                "items": [item.model_dump() for item in dto.items],
            }
        )
        self._order_repo.add_history(
            order_id=order.id,
            status=DeliveryStatus.PENDING,
            notes="Order created",
            user_id=user_id,
        )

        order.add_domain_event(
            OrderCreated(aggregate_id=order.id, payload=self._snapshot(order))
        )
        publish_on_commit(self._bus, order)

        log.info("order.created", order_id=str(order.id))
        return self._order_repo.get_by_id(str(order.id)) or order

    @transaction.atomic
    def assign_order(self, order_id: str, driver_id: str, user_id: Any = None) -> Order:
        """Assign a Pending order to a specific driver.

        Same exclusivity rule as a driver claim.

        Raises:
            DriverNotFound: no profile with *driver_id*.
            InactiveDriver: the driver is deactivated.
            OrderNotFound: order does not exist.
            AlreadyAssignedError: the order is no longer Pending and unassigned.
        """
        profile = self._driver_repo.get_by_id(driver_id)
        if not profile:
            raise DriverNotFound()
        if not profile.is_active:
            raise InactiveDriver()

        order = self._claim(order_id, profile, user_id, notes="Assigned by admin")
        order.add_domain_event(
            OrderAssigned(
                aggregate_id=order.id,
                payload={
                    "order": self._snapshot(order),
                    "driver_user_id": str(profile.user_id),
                },
            )
        )
        publish_on_commit(self._bus, order)
        logger.info("order.assigned", order_id=str(order.id), driver_id=str(profile.id))
        return order

    @transaction.atomic
    def update_order(self, order_id: str, dto: UpdateOrderDTO) -> Order:
        """Edit a non-terminal order.

        Raises:
            OrderNotFound: order does not exist.
            InvalidOrderStatus: the order is Delivered or Cancelled.
        """
        order = self._order_repo.get_for_update(order_id)
        if not order:
            raise OrderNotFound()

        log = logger.bind(order_id=str(order_id))
        if order.delivery_status in TERMINAL_STATES:
            log.warning("order.update_not_allowed", status=order.delivery_status)
            raise InvalidOrderStatus(
                f"Cannot edit an order in status {order.delivery_status}."
            )

        for field in ("customer_name", "customer_phone", "total_amount", "notes"):
            value = getattr(dto, field)
            if value is not None:
                setattr(order, field, value)
        if dto.address is not None:
            for field, value in dto.address.model_dump().items():
                setattr(order, field, value)
        if dto.payment_mode is not None and dto.payment_mode != order.payment_mode:
            order.payment_mode = dto.payment_mode
            order.payment_status = payment_status_for(dto.payment_mode)

        self._order_repo.save(order)
        if dto.items is not None:
            self._order_repo.replace_items(
                order, [item.model_dump() for item in dto.items]
            )

        order = self._order_repo.get_by_id(order_id)
        order.add_domain_event(
            OrderUpdated(aggregate_id=order.id, payload=self._snapshot(order))
        )
        publish_on_commit(self._bus, order)
        log.info("order.updated")
        return order

    @transaction.atomic
    def cancel_order(self, order_id: str, notes: str = "", user_id: Any = None) -> Order:
        """Cancel a Pending order.

        Raises:
            OrderNotFound: order does not exist.
            InvalidOrderStatus: cancellation not allowed from current status.
        """
        order = self._order_repo.get_for_update(order_id)
        if not order:
            raise OrderNotFound()

        log = logger.bind(order_id=str(order_id), current_status=order.delivery_status)
        if not order.can_transition_to(DeliveryStatus.CANCELLED):
            log.warning("order.cancel_not_allowed")
            raise InvalidOrderStatus(
                f"Cannot cancel order in status {order.delivery_status}."
            )

        self._transition(order, DeliveryStatus.CANCELLED, notes or "Order cancelled", user_id)

        order = self._order_repo.get_by_id(order_id)
        order.add_domain_event(
            OrderCancelled(aggregate_id=order.id, payload=self._snapshot(order))
        )
        publish_on_commit(self._bus, order)
        log.info("order.cancelled")
        return order

    @transaction.atomic
    def delete_order(self, order_id: str) -> None:
        """Soft-delete an order.

        Raises:
            OrderNotFound: order does not exist.
        """
        if not self._order_repo.delete(order_id):
            raise OrderNotFound()
        logger.info("order.deleted", order_id=str(order_id))

    def purge_all(self, confirmation: str) -> Dict[str, int]:
        """Hard-delete every order and transaction.

        Raises:
            PurgeNotConfirmed: *confirmation* is not ``DELETE_ALL_DATA``.
        """
        if confirmation != PURGE_CONFIRMATION:
            raise PurgeNotConfirmed(
                f'Send confirmation "{PURGE_CONFIRMATION}" to purge all data.'
            )
        counts = self._order_repo.purge_all()
        logger.warning("order.purged_all", **counts)
        return counts

    def purge_delivered(self) -> int:
        """Hard-delete Delivered orders older than the retention window."""
        cutoff = timezone.now() - timedelta(days=settings.DELIVERED_RETENTION_DAYS)
        deleted = self._order_repo.purge_delivered_before(cutoff)
        logger.info("order.delivered_purged", deleted=deleted, cutoff=cutoff.isoformat())
        return deleted

    # ------------------------------------------------------------------
    # Driver commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def claim_order(self, order_id: str, user_id: Any) -> Order:
        """The calling driver takes a Pending order; first claim wins.

        Raises:
            DriverNotFound: the caller has no driver profile.
            InactiveDriver: the driver is deactivated.
            OrderNotFound: order does not exist.
            AlreadyAssignedError: another driver already holds the order.
        """
        profile = self._get_driver(user_id)
        if not profile.is_active:
            raise InactiveDriver()

        order = self._claim(order_id, profile, user_id, notes="Taken by driver")
        order.add_domain_event(
            OrderTaken(
                aggregate_id=order.id,
                payload={
                    "order_id": str(order.id),
                    "order_number": order.order_number,
                    "driver_id": str(profile.id),
                    "driver_name": profile.name,
                },
            )
        )
        publish_on_commit(self._bus, order)
        logger.info("order.claimed", order_id=str(order.id), driver_id=str(profile.id))
        return order

    @transaction.atomic
    def start_delivery(self, order_id: str, user_id: Any) -> Order:
        """Owning driver moves the order Assigned -> In Transit."""
        profile = self._get_driver(user_id)
        order = self._get_owned_for_update(order_id, profile)

        if not order.can_transition_to(DeliveryStatus.IN_TRANSIT):
            raise InvalidOrderStatus(
                f"Cannot start delivery of an order in status {order.delivery_status}."
            )

        self._transition(order, DeliveryStatus.IN_TRANSIT, "Out for delivery", user_id)
        order = self._order_repo.get_by_id(order_id)
        order.add_domain_event(
            OrderStarted(aggregate_id=order.id, payload=self._snapshot(order))
        )
        publish_on_commit(self._bus, order)
        logger.info("order.started", order_id=str(order_id), driver_id=str(profile.id))
        return order

    @transaction.atomic
    def complete_order(
        self, order_id: str, user_id: Any, dto: CompleteOrderDTO
    ) -> Order:
        """Owning driver confirms delivery.

        Marks the order Delivered and paid, bumps the driver's counters and
        appends one Transaction.  The row lock makes this observe a claim
        committed by a concurrent transaction.

        Raises:
            DriverNotFound: the caller has no driver profile.
            OrderNotFound: order does not exist.
            NotAssignedToCaller: the order belongs to another driver.
            InvalidOrderStatus: the order is not Assigned or In Transit.
        """
        profile = self._get_driver(user_id)
        order = self._get_owned_for_update(order_id, profile)
        log = logger.bind(order_id=str(order_id), driver_id=str(profile.id))

        if order.delivery_status not in COMPLETABLE_STATES:
            log.warning("order.complete_not_allowed", status=order.delivery_status)
            raise InvalidOrderStatus(
                f"Cannot complete an order in status {order.delivery_status}."
            )

        now = timezone.now()
        collected = dto.payment_method or order.payment_mode
        order.payment_status = PaymentStatus.COMPLETED
        order.actual_payment_method = collected
        order.delivered_at = now
        order.delivered_by = profile.name
        order.delivery_latitude = dto.latitude
        order.delivery_longitude = dto.longitude
        order.delivery_photo = dto.photo
        order.delivery_notes = dto.notes
        self._transition(order, DeliveryStatus.DELIVERED, dto.notes or "Delivered", user_id)

        self._driver_repo.increment_deliveries(profile.id)
        self._order_repo.add_transaction(
            {
                "order_number": order.order_number,
                "amount": order.total_amount,
                "payment_mode": collected,
                "payment_status": PaymentStatus.COMPLETED,
                "driver_id": profile.id,
                "customer": order.customer_name,
            }
        )

        order = self._order_repo.get_by_id(order_id)
        payload = self._snapshot(order, include=DELIVERED_FIELDS)
        payload["latitude"] = order.delivery_latitude
        payload["longitude"] = order.delivery_longitude
        order.add_domain_event(OrderDelivered(aggregate_id=order.id, payload=payload))
        publish_on_commit(self._bus, order)
        log.info("order.delivered", amount=str(order.total_amount))
        return order

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: str) -> Order:
        """Retrieve a single order by ID.

        Raises:
            OrderNotFound: if the order does not exist.
        """
        order = self._order_repo.get_by_id(order_id)
        if not order:
            raise OrderNotFound()
        return order

    def list_orders(self, filters: Optional[Dict[str, Any]] = None):
        """Return live orders, optionally filtered."""
        return self._order_repo.list(filters)

    def list_open_orders(self):
        """Orders drivers still care about: Pending, Assigned or In Transit."""
        return self._order_repo.list({"delivery_status__in": OPEN_STATES})

    def driver_history(self, user_id: Any):
        """Orders the calling driver has delivered."""
        profile = self._get_driver(user_id)
        return self._order_repo.list_for_driver(
            str(profile.id), [DeliveryStatus.DELIVERED]
        ).order_by("-delivered_at")

    def dashboard(self) -> DashboardDTO:
        counts = self._order_repo.dashboard_counts()
        return DashboardDTO(total_drivers=self._driver_repo.count(), **counts)

    def delivery_history(self, filters: Optional[Dict[str, Any]] = None):
        """Delivered orders, latest delivery first, with their summed total.

        Returns ``(orders, total_revenue)``; *filters* narrow both alike.
        """
        filters = filters or {}
        orders = self._order_repo.list(
            {"delivery_status": DeliveryStatus.DELIVERED, **filters}
        ).order_by("-delivered_at")
        return orders, self._order_repo.delivered_revenue(filters)

    def revenue_report(self, period: str = RevenuePeriod.ALL) -> RevenueReportDTO:
        period = RevenuePeriod(period)
        now = timezone.now()
        today = timezone.localdate(now)
        since = {
            RevenuePeriod.TODAY: _start_of_day(today),
            RevenuePeriod.WEEK: now - timedelta(days=7),
            RevenuePeriod.MONTH: now - timedelta(days=30),
        }.get(period)

        by_mode = self._order_repo.revenue_by_payment_mode(since)
        first_day = today - timedelta(days=REVENUE_CHART_DAYS - 1)
        daily = self._order_repo.daily_revenue(_start_of_day(first_day))
        days = [first_day + timedelta(days=i) for i in range(REVENUE_CHART_DAYS)]

        return RevenueReportDTO(
            period=period.value,
            total_revenue=sum((row["total"] for row in by_mode.values()), Decimal("0.00")),
            payment_methods={
                mode: PaymentModeRevenueDTO(**row) for mode, row in by_mode.items()
            },
            chart=[
                DailyRevenueDTO(day=day, revenue=daily.get(day, Decimal("0.00")))
                for day in days
            ],
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_driver(self, user_id: Any) -> DriverProfile:
        profile = self._driver_repo.get_by_user_id(user_id)
        if not profile:
            raise DriverNotFound()
        return profile

    def _get_owned_for_update(self, order_id: str, profile: DriverProfile) -> Order:
        order = self._order_repo.get_for_update(order_id)
        if not order:
            raise OrderNotFound()
        if not order.is_assigned_to(profile.id):
            logger.warning(
                "order.not_assigned_to_caller",
                order_id=str(order_id),
                driver_id=str(profile.id),
            )
            raise NotAssignedToCaller()
        return order

    def _claim(
        self, order_id: str, profile: DriverProfile, user_id: Any, notes: str
    ) -> Order:
        if not self._order_repo.get_by_id(order_id):
            raise OrderNotFound()

        won = self._order_repo.claim(
            order_id,
            {
                "assigned_driver_id": profile.id,
                "assigned_driver_name": profile.name,
                "assigned_driver_phone": profile.phone,
                "assigned_at": timezone.now(),
            },
        )
        if not won:
            logger.info(
                "order.claim_lost", order_id=str(order_id), driver_id=str(profile.id)
            )
            raise AlreadyAssignedError()

        self._order_repo.add_history(
            order_id=order_id,
            status=DeliveryStatus.ASSIGNED,
            old_status=DeliveryStatus.PENDING,
            notes=notes,
            user_id=user_id,
        )
        return self._order_repo.get_by_id(order_id)

    def _transition(
        self, order: Order, new_status: str, notes: str, user_id: Any
    ) -> None:
        old_status = order.delivery_status
        order.delivery_status = new_status
        order.status_updated_at = timezone.now()
        self._order_repo.save(order)
        self._order_repo.add_history(
            order_id=order.id,
            status=new_status,
            old_status=old_status,
            notes=notes,
            user_id=user_id,
        )

    @staticmethod
    def _snapshot(order: Order, include: Optional[set] = None) -> Dict[str, Any]:
        return OrderOutputDTO.from_entity(order).to_message(include=include)
