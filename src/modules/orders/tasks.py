"""Periodic tasks of the orders module."""

from celery import shared_task

from modules.drivers.repositories.django_repository import DriverDjangoRepository
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService


@shared_task(name="orders.purge_delivered_orders")
def purge_delivered_orders():
    """Hard-delete Delivered orders past the retention window."""
    service = OrderService(
        order_repository=OrderDjangoRepository(),
        driver_repository=DriverDjangoRepository(),
    )
    deleted = service.purge_delivered()
    return {"deleted": deleted}
