"""Django ORM implementation of the Order repository.

Satisfies ``IOrderRepository`` using Django's QuerySet API.
All write operations are wrapped in ``transaction.atomic()`` to ensure
the Order aggregate (Order + OrderItems) is persisted atomically.

Claim exclusivity is a single conditional ``UPDATE ... WHERE
assigned_driver_id IS NULL AND delivery_status = 'Pending'``; every other
mutation locks the row with ``select_for_update()``.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Count, Q, Sum
from django.db.models.functions import TruncDate

from modules.orders.constants import DeliveryStatus, PaymentStatus
from modules.orders.models import Order, OrderItem, OrderStatusHistory, Transaction
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order with its items atomically.

        ``data`` holds the Order field values plus ``items``: a list of
        dicts with ``name``, ``quantity`` and ``unit_price``.
        """
        fields = dict(data)
        items = fields.pop("items", [])
        order = Order(**fields)
        order.save()

        for item_data in items:
            OrderItem(order=order, **item_data).save()

        log = logger.bind(order_id=str(order.id), item_count=len(items))
        log.info("order.persisted")
        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve a live order with eager-loaded items and history.

        Returns ``None`` for non-existent, soft-deleted or invalid IDs.
        """
        try:
            return (
                Order.objects.alive()
                .prefetch_related("items", "status_history")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve a live order with a row-level lock (SELECT FOR UPDATE).

        Must be called inside ``transaction.atomic``.  Returns ``None`` for
        non-existent or invalid IDs.
        """
        try:
            return Order.objects.select_for_update().alive().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None):
        """Queryset of live orders, newest first, with optional filters.

        Returned unevaluated so DRF filter backends and pagination can
        refine it.
        """
        queryset = Order.objects.alive().prefetch_related("items")
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    def list_for_driver(self, driver_id: str, statuses: List[str]):
        return Order.objects.alive().filter(
            assigned_driver_id=driver_id,
            delivery_status__in=statuses,
        )

    # ------------------------------------------------------------------
    # Claim
    # ------------------------------------------------------------------

    def claim(self, id: str, snapshot: Dict[str, Any]) -> bool:
        """Atomically set the assignment snapshot on a pending order.

        ``snapshot`` holds ``assigned_driver_id``, ``assigned_driver_name``,
        ``assigned_driver_phone`` and ``assigned_at``.
        """
        try:
            updated = (
                Order.objects.alive()
                .filter(
                    id=id,
                    assigned_driver_id__isnull=True,
                    delivery_status=DeliveryStatus.PENDING,
                )
                .update(
                    delivery_status=DeliveryStatus.ASSIGNED,
                    status_updated_at=snapshot["assigned_at"],
                    updated_at=snapshot["assigned_at"],
                    **snapshot,
                )
            )
        except (ValueError, ValidationError):
            return False
        logger.info("order.claim_attempted", order_id=str(id), updated=updated)
        return updated == 1

    # ------------------------------------------------------------------
    # Save / Delete (IRepository contract)
    # ------------------------------------------------------------------

    @transaction.atomic
    def save(self, entity: Order) -> Order:
        """Persist (create or update) an order."""
        entity.save()
        logger.info("order.saved", order_id=str(entity.id))
        return entity

    @transaction.atomic
    def delete(self, id: str) -> bool:
        """Soft-delete an order by ID."""
        order = self.get_by_id(id)
        if not order:
            return False
        order.delete()
        logger.info("order.soft_deleted", order_id=str(id))
        return True

    @transaction.atomic
    def replace_items(self, order: Order, items: List[Dict[str, Any]]) -> None:
        OrderItem.objects.filter(order=order).delete()
        for item_data in items:
            OrderItem(order=order, **item_data).save()

    # ------------------------------------------------------------------
    # Audit trail / payments
    # ------------------------------------------------------------------

    def add_history(
        self,
        order_id: Any,
        status: str,
        notes: str = "",
        old_status: Optional[str] = None,
        user_id: Optional[Any] = None,
    ) -> OrderStatusHistory:
        """Record a status change in the order's audit trail."""
        history = OrderStatusHistory(
            order_id=order_id,
            old_status=old_status,
            new_status=status,
            notes=notes,
            user_id=user_id,
        )
        history.save()

        logger.info(
            "order.history_added",
            order_id=str(order_id),
            old_status=old_status,
            new_status=status,
        )
        return history

    def add_transaction(self, data: Dict[str, Any]) -> Transaction:
        record = Transaction.objects.create(**data)
        logger.info(
            "transaction.recorded",
            order_number=record.order_number,
            amount=str(record.amount),
        )
        return record

    # ------------------------------------------------------------------
    # Retention / bulk operations
    # ------------------------------------------------------------------

    @transaction.atomic
    def purge_delivered_before(self, cutoff: datetime) -> int:
        _, per_model = Order.objects.filter(
            delivery_status=DeliveryStatus.DELIVERED,
            delivered_at__lt=cutoff,
        ).hard_delete()
        # The total includes cascaded items and history rows.
        return per_model.get(Order._meta.label, 0)

    @transaction.atomic
    def purge_all(self) -> Dict[str, int]:
        orders = Order.objects.count()
        transactions = Transaction.objects.count()
        Order.objects.all().hard_delete()
        Transaction.objects.all().delete()
        return {"orders": orders, "transactions": transactions}

    def dashboard_counts(self) -> Dict[str, Any]:
        counts = Order.objects.alive().aggregate(
            total=Count("id"),
            pending=Count("id", filter=Q(delivery_status=DeliveryStatus.PENDING)),
            delivered=Count("id", filter=Q(delivery_status=DeliveryStatus.DELIVERED)),
            revenue=Sum(
                "total_amount",
                filter=Q(payment_status=PaymentStatus.COMPLETED),
            ),
        )
        return {
            "total_orders": counts["total"] or 0,
            "pending_orders": counts["pending"] or 0,
            "delivered_orders": counts["delivered"] or 0,
            "total_revenue": counts["revenue"] or Decimal("0.00"),
        }

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def delivered_revenue(self, filters: Optional[Dict[str, Any]] = None) -> Decimal:
        queryset = Order.objects.alive().filter(delivery_status=DeliveryStatus.DELIVERED)
        if filters:
            queryset = queryset.filter(**filters)
        return queryset.aggregate(total=Sum("total_amount"))["total"] or Decimal("0.00")

    def _completed_since(self, since: Optional[datetime]):
        queryset = Order.objects.alive().filter(payment_status=PaymentStatus.COMPLETED)
        if since is not None:
            queryset = queryset.filter(delivered_at__gte=since)
        return queryset

    def revenue_by_payment_mode(
        self, since: Optional[datetime] = None
    ) -> Dict[str, Dict[str, Any]]:
        rows = (
            self._completed_since(since)
            .values("payment_mode")
            .annotate(total=Sum("total_amount"), count=Count("id"))
            .order_by("payment_mode")
        )
        return {
            row["payment_mode"]: {"total": row["total"], "count": row["count"]}
            for row in rows
        }

    def daily_revenue(self, since: datetime) -> Dict[date, Decimal]:
        # TruncDate buckets in the active time zone, matching localdate().
        rows = (
            self._completed_since(since)
            .annotate(day=TruncDate("delivered_at"))
            .values("day")
            .annotate(total=Sum("total_amount"))
            .order_by("day")
        )
        return {row["day"]: row["total"] for row in rows}
