"""Event handlers that fan committed order and driver changes out to
connected clients.

Who hears what:

- ``ORDER_CREATED``, ``ORDER_UPDATED``, ``ORDER_CANCELLED``: drivers.
- ``ORDER_TAKEN``: everyone, so admins and other drivers drop the order.
- ``ORDER_ASSIGNED``: the assigned driver only.
- ``ORDER_DELIVERED`` and delivery starts (as ``ORDER_UPDATED``): admins.
- ``FORCE_LOGOUT``: the removed driver.

Delivery is best-effort; the router logs and skips dead channels.
"""

from __future__ import annotations

import structlog

from modules.drivers.events import DriverOffboarded
from modules.orders.events import (
    OrderAssigned,
    OrderCancelled,
    OrderCreated,
    OrderDelivered,
    OrderStarted,
    OrderTaken,
    OrderUpdated,
)
from modules.realtime import messages
from modules.realtime.registry import Role
from modules.realtime.router import BroadcastRouter
from shared.domain.bus import IEventBus, IEventHandler

logger = structlog.get_logger(__name__)

FORCE_LOGOUT_MESSAGE = "Your account has been removed. Please contact dispatch."


class _RouterHandler:
    def __init__(self, router: BroadcastRouter) -> None:
        self._router = router


class OrderCreatedHandler(_RouterHandler, IEventHandler[OrderCreated]):
    def handle(self, event: OrderCreated) -> None:
        sent = self._router.broadcast_to_role(
            messages.order_created(event.payload), Role.DRIVER
        )
        logger.info("realtime.order_created", order_id=str(event.aggregate_id), sent=sent)


class OrderTakenHandler(_RouterHandler, IEventHandler[OrderTaken]):
    def handle(self, event: OrderTaken) -> None:
        payload = event.payload
        sent = self._router.broadcast_all(
            messages.order_taken(
                order_id=payload["order_id"],
                driver_id=payload["driver_id"],
                driver_name=payload["driver_name"],
                order_number=payload.get("order_number", ""),
            )
        )
        logger.info("realtime.order_taken", order_id=str(event.aggregate_id), sent=sent)


class OrderAssignedHandler(_RouterHandler, IEventHandler[OrderAssigned]):
    def handle(self, event: OrderAssigned) -> None:
        delivered = self._router.send_to_actor(
            event.payload["driver_user_id"],
            messages.order_assigned(event.payload["order"]),
        )
        logger.info(
            "realtime.order_assigned",
            order_id=str(event.aggregate_id),
            delivered=delivered,
        )


class OrderStartedHandler(_RouterHandler, IEventHandler[OrderStarted]):
    def handle(self, event: OrderStarted) -> None:
        self._router.broadcast_to_role(messages.order_updated(event.payload), Role.ADMIN)


class OrderDeliveredHandler(_RouterHandler, IEventHandler[OrderDelivered]):
    def handle(self, event: OrderDelivered) -> None:
        sent = self._router.broadcast_to_role(
            messages.order_delivered(event.payload), Role.ADMIN
        )
        logger.info(
            "realtime.order_delivered", order_id=str(event.aggregate_id), sent=sent
        )


class OrderUpdatedHandler(_RouterHandler, IEventHandler[OrderUpdated]):
    def handle(self, event: OrderUpdated) -> None:
        self._router.broadcast_to_role(messages.order_updated(event.payload), Role.DRIVER)


class OrderCancelledHandler(_RouterHandler, IEventHandler[OrderCancelled]):
    def handle(self, event: OrderCancelled) -> None:
        self._router.broadcast_to_role(
            messages.order_cancelled(event.payload), Role.DRIVER
        )


class DriverOffboardedHandler(_RouterHandler, IEventHandler[DriverOffboarded]):
    def handle(self, event: DriverOffboarded) -> None:
        delivered = self._router.send_to_actor(
            event.payload["user_id"], messages.force_logout(FORCE_LOGOUT_MESSAGE)
        )
        logger.info(
            "realtime.force_logout",
            user_id=event.payload["user_id"],
            delivered=delivered,
        )


HANDLERS = (
    (OrderCreated, OrderCreatedHandler),
    (OrderTaken, OrderTakenHandler),
    (OrderAssigned, OrderAssignedHandler),
    (OrderStarted, OrderStartedHandler),
    (OrderDelivered, OrderDeliveredHandler),
    (OrderUpdated, OrderUpdatedHandler),
    (OrderCancelled, OrderCancelledHandler),
    (DriverOffboarded, DriverOffboardedHandler),
)


def subscribe_all(bus: IEventBus, router: BroadcastRouter) -> list:
    """Subscribe one handler per event type; returns the handler instances."""
    handlers = []
    for event_class, handler_class in HANDLERS:
        handler = handler_class(router)
        bus.subscribe(event_class, handler)
        handlers.append((event_class, handler))
    return handlers
