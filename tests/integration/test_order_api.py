"""Integration tests for the admin and driver order endpoints."""

from uuid import uuid4

import pytest

from modules.orders.models import Transaction

pytestmark = pytest.mark.integration

ADMIN_URL = "/api/v1/admin/orders/"
DRIVER_URL = "/api/v1/driver/orders/"


def _order_body(**overrides):
    body = {
        "customer_name": "Asha Patel",
        "customer_phone": "9811111101",
        "items": [{"name": "Rice 5kg", "quantity": 1, "unit_price": "500.00"}],
        "delivery_address": {
            "address_line": "12 MG Road",
            "city": "Bengaluru",
            "pincode": "560001",
            "latitude": 12.9756,
            "longitude": 77.6050,
        },
        "total_amount": "500.00",
        "payment_mode": "Cash",
    }
    body.update(overrides)
    return body


class TestAdminOrders:
    def test_create(self, admin_client):
        response = admin_client.post(ADMIN_URL, _order_body(), format="json")

        assert response.status_code == 201
        data = response.json()
        assert data["delivery_status"] == "Pending"
        assert data["payment_status"] == "Pending"
        assert data["order_number"].startswith("ORD-")
        assert data["status_history"][0]["new_status"] == "Pending"

    def test_create_paid_order_is_completed(self, admin_client):
        response = admin_client.post(
            ADMIN_URL, _order_body(payment_mode="Paid"), format="json"
        )
        assert response.json()["payment_status"] == "Completed"

    def test_create_validation_envelope(self, admin_client):
        response = admin_client.post(
            ADMIN_URL, _order_body(items=[], total_amount="0"), format="json"
        )

        assert response.status_code == 400
        body = response.json()
        assert body["type"] == "validation_error"
        assert {error["attr"] for error in body["errors"]} == {"items", "total_amount"}

    def test_list_filter_and_search(self, admin_client, make_order):
        make_order(customer_name="Asha Patel")
        make_order(customer_name="Vikram Rao", payment_mode="Paid")

        by_status = admin_client.get(ADMIN_URL, {"payment_status": "Completed"}).json()
        by_search = admin_client.get(ADMIN_URL, {"search": "Asha"}).json()

        assert by_status["count"] == 1
        assert by_status["results"][0]["customer_name"] == "Vikram Rao"
        assert [o["customer_name"] for o in by_search["results"]] == ["Asha Patel"]

    def test_retrieve_missing(self, admin_client):
        response = admin_client.get(f"{ADMIN_URL}{uuid4()}/")

        assert response.status_code == 404
        assert response.json()["errors"][0]["code"] == "ORDER_NOT_FOUND"

    def test_partial_update(self, admin_client, make_order):
        order = make_order()

        response = admin_client.patch(
            f"{ADMIN_URL}{order.id}/",
            {"notes": "Call on arrival", "delivery_address": {"address_line": "14 MG Road"}},
            format="json",
        )

        assert response.status_code == 200
        assert response.json()["notes"] == "Call on arrival"
        assert response.json()["address_line"] == "14 MG Road"

    def test_assign_and_conflict(self, admin_client, make_order, driver, other_driver):
        order = make_order()
        url = f"{ADMIN_URL}{order.id}/assign/"

        first = admin_client.post(url, {"driver_id": str(driver.id)}, format="json")
        second = admin_client.post(url, {"driver_id": str(other_driver.id)}, format="json")

        assert first.status_code == 200
        assert first.json()["assigned_driver_name"] == "Ravi Kumar"
        assert second.status_code == 409
        assert second.json()["errors"][0]["code"] == "ORDER_ALREADY_ASSIGNED"

    def test_cancel(self, admin_client, make_order):
        order = make_order()

        response = admin_client.post(
            f"{ADMIN_URL}{order.id}/cancel/", {"notes": "Duplicate"}, format="json"
        )

        assert response.status_code == 200
        assert response.json()["delivery_status"] == "Cancelled"

    def test_destroy_is_soft(self, admin_client, make_order):
        order = make_order()

        assert admin_client.delete(f"{ADMIN_URL}{order.id}/").status_code == 204
        assert admin_client.get(f"{ADMIN_URL}{order.id}/").status_code == 404

    def test_purge_requires_confirmation(self, admin_client, make_order):
        make_order()

        refused = admin_client.post(f"{ADMIN_URL}purge/", {"confirmation": "ok"})
        accepted = admin_client.post(
            f"{ADMIN_URL}purge/", {"confirmation": "DELETE_ALL_DATA"}
        )

        assert refused.status_code == 400
        assert refused.json()["errors"][0]["code"] == "CONFIRMATION_REQUIRED"
        assert accepted.json() == {"deleted": {"orders": 1, "transactions": 0}}

    def test_dashboard(self, admin_client, make_order, driver):
        make_order(total="120.00", payment_mode="Paid")

        data = admin_client.get(f"{ADMIN_URL}dashboard/").json()

        assert data["total_orders"] == 1
        assert data["pending_orders"] == 1
        assert float(data["total_revenue"]) == 120.0
        assert data["total_drivers"] == 1


class TestDriverOrders:
    def test_board_lists_open_orders(self, driver_client, order_service, make_order):
        open_order = make_order()
        cancelled = make_order()
        order_service.cancel_order(str(cancelled.id))

        data = driver_client.get(DRIVER_URL).json()

        assert [o["id"] for o in data["results"]] == [str(open_order.id)]

    def test_take_start_complete(self, driver_client, make_order, driver):
        order = make_order()
        base = f"{DRIVER_URL}{order.id}/"

        taken = driver_client.post(f"{base}take/")
        started = driver_client.post(f"{base}start/")
        completed = driver_client.post(
            f"{base}complete/", {"payment_method": "UPI"}, format="json"
        )

        assert taken.json()["delivery_status"] == "Assigned"
        assert started.json()["delivery_status"] == "In Transit"
        assert completed.status_code == 200
        assert completed.json()["delivery_status"] == "Delivered"
        assert completed.json()["actual_payment_method"] == "UPI"
        assert Transaction.objects.get().payment_mode == "UPI"

    def test_take_conflict(self, driver_client, other_driver_client, make_order):
        order = make_order()
        driver_client.post(f"{DRIVER_URL}{order.id}/take/")

        response = other_driver_client.post(f"{DRIVER_URL}{order.id}/take/")

        assert response.status_code == 409
        assert response.json()["type"] == "client_error"

    def test_complete_someone_elses_order(
        self, driver_client, other_driver_client, make_order
    ):
        order = make_order()
        driver_client.post(f"{DRIVER_URL}{order.id}/take/")

        response = other_driver_client.post(f"{DRIVER_URL}{order.id}/complete/")

        assert response.status_code == 403
        assert response.json()["errors"][0]["code"] == "NOT_ASSIGNED_TO_CALLER"

    def test_history(self, driver_client, make_order):
        order = make_order()
        driver_client.post(f"{DRIVER_URL}{order.id}/take/")
        driver_client.post(f"{DRIVER_URL}{order.id}/complete/")

        data = driver_client.get(f"{DRIVER_URL}history/").json()

        assert [o["id"] for o in data["results"]] == [str(order.id)]


class TestRoleSeparation:
    def test_driver_cannot_use_admin_endpoints(self, driver_client):
        assert driver_client.get(ADMIN_URL).status_code == 403

    def test_admin_without_profile_cannot_take(self, admin_client):
        assert admin_client.get(DRIVER_URL).status_code == 403

    def test_anonymous_is_rejected(self, api_client):
        response = api_client.get(ADMIN_URL)

        assert response.status_code == 401
        assert response.json()["type"] == "client_error"
