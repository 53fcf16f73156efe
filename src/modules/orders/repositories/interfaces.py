"""Order repository interface.

Extends ``IRepository[Order]`` with the methods the Order aggregate
needs: atomic creation with items, the conditional claim, row locking,
status history, delivery transactions and the retention purges.

The Service Layer depends exclusively on this contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.orders.models import Order, OrderStatusHistory, Transaction


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    The Order aggregate includes OrderItem children and
    OrderStatusHistory records.  Mutations must be atomic.
    """

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order with its items atomically."""

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve a live order with prefetched items and status history."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve a live order holding a row-level lock."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        """List live orders with optional filters."""

    @abstractmethod
    def claim(self, id: str, snapshot: Dict[str, Any]) -> bool:
        """Assign a pending, unassigned order in one conditional update.

        Returns ``False`` when no row matched, i.e. another driver got there
        first or the order is no longer Pending.
        """

    @abstractmethod
    def replace_items(self, order: Order, items: List[Dict[str, Any]]) -> None:
        """Replace the line items of *order*."""

    @abstractmethod
    def add_history(
        self,
        order_id: Any,
        status: str,
        notes: str = "",
        old_status: Optional[str] = None,
        user_id: Optional[Any] = None,
    ) -> OrderStatusHistory:
        """Record a status change in the order's audit trail."""

    @abstractmethod
    def add_transaction(self, data: Dict[str, Any]) -> Transaction:
        """Append a delivery payment record."""

    @abstractmethod
    def list_for_driver(self, driver_id: str, statuses: List[str]) -> List[Order]:
        """Orders whose assignment snapshot points at *driver_id*."""

    @abstractmethod
    def purge_delivered_before(self, cutoff: datetime) -> int:
        """Hard-delete Delivered orders delivered before *cutoff*."""

    @abstractmethod
    def purge_all(self) -> Dict[str, int]:
        """Hard-delete every order and transaction."""

    @abstractmethod
    def delivered_revenue(self, filters: Optional[Dict[str, Any]] = None) -> Decimal:
        """Summed ``total_amount`` of Delivered orders matching *filters*."""

    @abstractmethod
    def revenue_by_payment_mode(
        self, since: Optional[datetime] = None
    ) -> Dict[str, Dict[str, Any]]:
        """Completed-payment ``total`` and ``count`` per payment mode.

        With *since*, only orders delivered at or after it count.
        """

    @abstractmethod
    def daily_revenue(self, since: datetime) -> Dict[date, Decimal]:
        """Completed-payment revenue per local delivery day from *since*."""

    @abstractmethod
    def dashboard_counts(self) -> Dict[str, Any]:
        """Aggregate counters for the admin dashboard."""
