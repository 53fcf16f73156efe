"""Unit tests for OrderService.

Covers:
- Creation with payment status derived from the payment mode.
- Claim/assign exclusivity and the assignment snapshot.
- Start and completion by the owning driver only.
- Edits, cancellation, soft delete and purges.
- Domain events published after commit.
"""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from django.utils import timezone
from freezegun import freeze_time

from modules.drivers.constants import DriverStatus
from modules.drivers.exceptions import DriverNotFound, InactiveDriver
from modules.orders.constants import DeliveryStatus, PaymentStatus
from modules.orders.dtos import CompleteOrderDTO, OrderItemDTO, UpdateOrderDTO
from modules.orders.exceptions import (
    AlreadyAssignedError,
    InvalidOrderStatus,
    NotAssignedToCaller,
    OrderNotFound,
    PurgeNotConfirmed,
)
from modules.orders.models import Order, OrderStatusHistory, Transaction

pytestmark = pytest.mark.unit


def _statuses(order):
    return list(
        OrderStatusHistory.objects.filter(order_id=order.id)
        .order_by("created_at", "id")
        .values_list("new_status", flat=True)
    )


# ===========================================================================
# create_order
# ===========================================================================


class TestCreateOrder:
    def test_creates_pending_unassigned_order(self, make_order):
        order = make_order()

        assert order.delivery_status == DeliveryStatus.PENDING
        assert order.assigned_driver_id is None
        assert order.total_amount == Decimal("500.00")
        assert len(order.items.all()) == 1

    @pytest.mark.parametrize(
        "mode, expected",
        [("Cash", PaymentStatus.PENDING), ("Paid", PaymentStatus.COMPLETED)],
    )
    def test_payment_status_follows_mode(self, make_order, mode, expected):
        assert make_order(payment_mode=mode).payment_status == expected

    def test_records_initial_history(self, make_order):
        order = make_order()
        history = list(order.status_history.all())

        assert len(history) == 1
        assert history[0].new_status == DeliveryStatus.PENDING
        assert history[0].notes == "Order created"

    def test_history_records_acting_user(
        self, order_service, create_order_dto, admin_user
    ):
        order = order_service.create_order(create_order_dto(), user_id=admin_user.pk)
        assert order.status_history.get().user_id == admin_user.pk

    def test_publishes_created_event_after_commit(
        self, order_service, create_order_dto, recording_bus,
        django_capture_on_commit_callbacks,
    ):
        with django_capture_on_commit_callbacks(execute=True):
            order = order_service.create_order(create_order_dto())

        assert recording_bus.names() == ["OrderCreated"]
        assert recording_bus.events[0].payload["orderNumber"] == order.order_number

    def test_nothing_published_before_commit(
        self, order_service, create_order_dto, recording_bus
    ):
        order_service.create_order(create_order_dto())
        assert recording_bus.events == []


# ===========================================================================
# claim_order / assign_order
# ===========================================================================


class TestClaimOrder:
    def test_claim_sets_snapshot(self, order_service, make_order, driver):
        order = make_order()

        claimed = order_service.claim_order(str(order.id), driver.user_id)

        assert claimed.delivery_status == DeliveryStatus.ASSIGNED
        assert claimed.assigned_driver_id == driver.id
        assert claimed.assigned_driver_name == "Ravi Kumar"
        assert claimed.assigned_driver_phone == "9800000001"
        assert claimed.assigned_at is not None
        assert _statuses(order) == [DeliveryStatus.PENDING, DeliveryStatus.ASSIGNED]

    def test_second_claim_loses_and_leaves_winner(
        self, order_service, make_order, driver, other_driver
    ):
        order = make_order()
        order_service.claim_order(str(order.id), driver.user_id)

        with pytest.raises(AlreadyAssignedError):
            order_service.claim_order(str(order.id), other_driver.user_id)

        order.refresh_from_db()
        assert order.assigned_driver_id == driver.id
        assert _statuses(order).count(DeliveryStatus.ASSIGNED) == 1

    def test_claim_by_same_driver_twice_is_rejected(
        self, order_service, make_order, driver
    ):
        order = make_order()
        order_service.claim_order(str(order.id), driver.user_id)

        with pytest.raises(AlreadyAssignedError):
            order_service.claim_order(str(order.id), driver.user_id)

    def test_claim_of_cancelled_order_is_rejected(
        self, order_service, make_order, driver
    ):
        order = make_order()
        order_service.cancel_order(str(order.id))

        with pytest.raises(AlreadyAssignedError):
            order_service.claim_order(str(order.id), driver.user_id)

    def test_claim_missing_order(self, order_service, driver):
        with pytest.raises(OrderNotFound):
            order_service.claim_order(str(uuid4()), driver.user_id)

    def test_claim_without_profile(self, order_service, make_order, admin_user):
        with pytest.raises(DriverNotFound):
            order_service.claim_order(str(make_order().id), admin_user.pk)

    def test_inactive_driver_cannot_claim(self, order_service, make_order, driver):
        driver.status = DriverStatus.INACTIVE
        driver.save()

        with pytest.raises(InactiveDriver):
            order_service.claim_order(str(make_order().id), driver.user_id)

    def test_publishes_taken_event(
        self, order_service, make_order, driver, recording_bus,
        django_capture_on_commit_callbacks,
    ):
        order = make_order()
        with django_capture_on_commit_callbacks(execute=True):
            order_service.claim_order(str(order.id), driver.user_id)

        event = recording_bus.events[-1]
        assert event.event_name == "OrderTaken"
        assert event.payload == {
            "order_id": str(order.id),
            "order_number": order.order_number,
            "driver_id": str(driver.id),
            "driver_name": "Ravi Kumar",
        }


class TestAssignOrder:
    def test_assign_sets_snapshot(self, order_service, make_order, driver, admin_user):
        order = make_order()

        assigned = order_service.assign_order(
            str(order.id), str(driver.id), user_id=admin_user.pk
        )

        assert assigned.delivery_status == DeliveryStatus.ASSIGNED
        assert assigned.assigned_driver_id == driver.id

    def test_assign_after_claim_conflicts(
        self, order_service, make_order, driver, other_driver
    ):
        order = make_order()
        order_service.claim_order(str(order.id), driver.user_id)

        with pytest.raises(AlreadyAssignedError):
            order_service.assign_order(str(order.id), str(other_driver.id))

    def test_unknown_driver(self, order_service, make_order):
        with pytest.raises(DriverNotFound):
            order_service.assign_order(str(make_order().id), str(uuid4()))

    def test_publishes_assigned_event_for_driver_account(
        self, order_service, make_order, driver, recording_bus,
        django_capture_on_commit_callbacks,
    ):
        order = make_order()
        with django_capture_on_commit_callbacks(execute=True):
            order_service.assign_order(str(order.id), str(driver.id))

        event = recording_bus.events[-1]
        assert event.event_name == "OrderAssigned"
        assert event.payload["driver_user_id"] == str(driver.user_id)
        assert event.payload["order"]["deliveryStatus"] == "Assigned"


# ===========================================================================
# start_delivery / complete_order
# ===========================================================================


@pytest.fixture()
def claimed(order_service, make_order, driver):
    order = make_order()
    return order_service.claim_order(str(order.id), driver.user_id)


class TestStartDelivery:
    def test_owner_starts(self, order_service, claimed, driver):
        started = order_service.start_delivery(str(claimed.id), driver.user_id)
        assert started.delivery_status == DeliveryStatus.IN_TRANSIT

    def test_other_driver_cannot_start(self, order_service, claimed, other_driver):
        with pytest.raises(NotAssignedToCaller):
            order_service.start_delivery(str(claimed.id), other_driver.user_id)

    def test_cannot_start_twice(self, order_service, claimed, driver):
        order_service.start_delivery(str(claimed.id), driver.user_id)

        with pytest.raises(InvalidOrderStatus):
            order_service.start_delivery(str(claimed.id), driver.user_id)


class TestCompleteOrder:
    def test_completes_and_records_payment(self, order_service, claimed, driver):
        delivered = order_service.complete_order(
            str(claimed.id), driver.user_id, CompleteOrderDTO()
        )

        assert delivered.delivery_status == DeliveryStatus.DELIVERED
        assert delivered.payment_status == PaymentStatus.COMPLETED
        assert delivered.actual_payment_method == "Cash"
        assert delivered.delivered_by == "Ravi Kumar"
        assert delivered.delivered_at is not None

    def test_bumps_driver_counters(self, order_service, claimed, driver):
        order_service.complete_order(str(claimed.id), driver.user_id, CompleteOrderDTO())

        driver.refresh_from_db()
        assert driver.total_deliveries == 1
        assert driver.completed_deliveries == 1

    def test_appends_one_transaction(self, order_service, claimed, driver):
        order_service.complete_order(
            str(claimed.id), driver.user_id, CompleteOrderDTO(payment_method="UPI")
        )

        record = Transaction.objects.get()
        assert record.order_number == claimed.order_number
        assert record.amount == Decimal("500.00")
        assert record.payment_mode == "UPI"
        assert record.driver_id == driver.id

    def test_stores_proof_of_delivery(self, order_service, claimed, driver):
        dto = CompleteOrderDTO(
            latitude=12.97, longitude=77.59, photo="pod/1.jpg", notes="Left at door"
        )
        delivered = order_service.complete_order(str(claimed.id), driver.user_id, dto)

        assert delivered.delivery_latitude == 12.97
        assert delivered.delivery_photo == "pod/1.jpg"
        assert delivered.delivery_notes == "Left at door"

    def test_completes_from_in_transit(self, order_service, claimed, driver):
        order_service.start_delivery(str(claimed.id), driver.user_id)

        delivered = order_service.complete_order(
            str(claimed.id), driver.user_id, CompleteOrderDTO()
        )
        assert delivered.delivery_status == DeliveryStatus.DELIVERED

    def test_other_driver_cannot_complete(self, order_service, claimed, other_driver):
        with pytest.raises(NotAssignedToCaller):
            order_service.complete_order(
                str(claimed.id), other_driver.user_id, CompleteOrderDTO()
            )

    def test_cannot_complete_unassigned_order(self, order_service, make_order, driver):
        with pytest.raises(NotAssignedToCaller):
            order_service.complete_order(
                str(make_order().id), driver.user_id, CompleteOrderDTO()
            )

    def test_delivered_is_terminal(self, order_service, claimed, driver):
        order_service.complete_order(str(claimed.id), driver.user_id, CompleteOrderDTO())

        with pytest.raises(InvalidOrderStatus):
            order_service.complete_order(
                str(claimed.id), driver.user_id, CompleteOrderDTO()
            )
        assert Transaction.objects.count() == 1

    def test_publishes_delivered_subset(
        self, order_service, claimed, driver, recording_bus,
        django_capture_on_commit_callbacks,
    ):
        with django_capture_on_commit_callbacks(execute=True):
            order_service.complete_order(
                str(claimed.id),
                driver.user_id,
                CompleteOrderDTO(latitude=12.97, longitude=77.59),
            )

        payload = recording_bus.events[-1].payload
        assert recording_bus.events[-1].event_name == "OrderDelivered"
        assert payload["deliveryStatus"] == "Delivered"
        assert payload["paymentStatus"] == "Completed"
        assert payload["latitude"] == 12.97
        assert "items" not in payload


# ===========================================================================
# update / cancel / delete / purge
# ===========================================================================


class TestUpdateOrder:
    def test_updates_only_given_fields(self, order_service, make_order):
        order = make_order()

        updated = order_service.update_order(
            str(order.id), UpdateOrderDTO(customer_name="Vikram Rao")
        )

        assert updated.customer_name == "Vikram Rao"
        assert updated.customer_phone == "9811111101"

    def test_payment_mode_change_rederives_status(self, order_service, make_order):
        order = make_order(payment_mode="Cash")

        updated = order_service.update_order(
            str(order.id), UpdateOrderDTO(payment_mode="Paid")
        )
        assert updated.payment_status == PaymentStatus.COMPLETED

    def test_replaces_items(self, order_service, make_order):
        order = make_order()

        updated = order_service.update_order(
            str(order.id),
            UpdateOrderDTO(
                items=[
                    OrderItemDTO(name="Milk", quantity=2, unit_price=Decimal("60")),
                    OrderItemDTO(name="Bread", quantity=1, unit_price=Decimal("45")),
                ]
            ),
        )
        assert sorted(i.name for i in updated.items.all()) == ["Bread", "Milk"]

    def test_terminal_order_cannot_be_edited(self, order_service, make_order):
        order = make_order()
        order_service.cancel_order(str(order.id))

        with pytest.raises(InvalidOrderStatus):
            order_service.update_order(str(order.id), UpdateOrderDTO(notes="late"))


class TestCancelOrder:
    def test_cancels_pending(self, order_service, make_order):
        order = make_order()

        cancelled = order_service.cancel_order(str(order.id), notes="Customer left")

        assert cancelled.delivery_status == DeliveryStatus.CANCELLED
        history = cancelled.status_history.get(new_status=DeliveryStatus.CANCELLED)
        assert history.notes == "Customer left"

    def test_assigned_order_cannot_be_cancelled(self, order_service, claimed):
        with pytest.raises(InvalidOrderStatus):
            order_service.cancel_order(str(claimed.id))

        claimed.refresh_from_db()
        assert claimed.delivery_status == DeliveryStatus.ASSIGNED

    def test_missing_order(self, order_service):
        with pytest.raises(OrderNotFound):
            order_service.cancel_order(str(uuid4()))


class TestDeleteAndPurge:
    def test_delete_is_soft(self, order_service, make_order):
        order = make_order()
        order_service.delete_order(str(order.id))

        with pytest.raises(OrderNotFound):
            order_service.get_order(str(order.id))
        assert Order.objects.filter(id=order.id).exists()

    def test_delete_missing(self, order_service):
        with pytest.raises(OrderNotFound):
            order_service.delete_order(str(uuid4()))

    def test_purge_requires_confirmation(self, order_service, make_order):
        make_order()

        with pytest.raises(PurgeNotConfirmed):
            order_service.purge_all("yes")
        assert Order.objects.count() == 1

    def test_purge_all_removes_orders_and_transactions(
        self, order_service, claimed, driver, make_order
    ):
        make_order()
        order_service.complete_order(str(claimed.id), driver.user_id, CompleteOrderDTO())

        counts = order_service.purge_all("DELETE_ALL_DATA")

        assert counts == {"orders": 2, "transactions": 1}
        assert Order.objects.count() == 0
        assert Transaction.objects.count() == 0

    def test_purge_delivered_respects_retention(
        self, order_service, claimed, driver, make_order
    ):
        with freeze_time(timezone.now() - timedelta(days=2)):
            order_service.complete_order(
                str(claimed.id), driver.user_id, CompleteOrderDTO()
            )
        pending = make_order()

        assert order_service.purge_delivered() == 1
        assert not Order.objects.filter(id=claimed.id).exists()
        assert Order.objects.filter(id=pending.id).exists()

    def test_recent_deliveries_survive_purge(self, order_service, claimed, driver):
        order_service.complete_order(str(claimed.id), driver.user_id, CompleteOrderDTO())

        assert order_service.purge_delivered() == 0


# ===========================================================================
# Queries
# ===========================================================================


class TestQueries:
    def test_open_orders_exclude_terminal(self, order_service, make_order, claimed):
        cancelled = make_order()
        order_service.cancel_order(str(cancelled.id))
        pending = make_order()

        ids = set(order_service.list_open_orders().values_list("id", flat=True))

        assert ids == {claimed.id, pending.id}

    def test_driver_history_lists_own_deliveries(
        self, order_service, claimed, driver, other_driver
    ):
        order_service.complete_order(str(claimed.id), driver.user_id, CompleteOrderDTO())

        assert [o.id for o in order_service.driver_history(driver.user_id)] == [
            claimed.id
        ]
        assert list(order_service.driver_history(other_driver.user_id)) == []

    def test_dashboard(self, order_service, make_order, claimed, driver):
        make_order(total="250.00", payment_mode="Paid")
        order_service.complete_order(str(claimed.id), driver.user_id, CompleteOrderDTO())

        dashboard = order_service.dashboard()

        assert dashboard.total_orders == 2
        assert dashboard.pending_orders == 1
        assert dashboard.delivered_orders == 1
        assert dashboard.total_revenue == Decimal("750.00")
        assert dashboard.total_drivers == 1
