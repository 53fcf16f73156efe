"""Channel message envelopes.

Every message is a JSON object with a ``type`` key; payload keys are
camelCase.  Builders return fresh dicts so a broadcast can never be
mutated by one recipient.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any, Dict, Optional


class MessageType(StrEnum):
    REGISTER = "register"
    START_TRACKING = "START_TRACKING"
    STOP_TRACKING = "STOP_TRACKING"
    REQUEST_ALL_LOCATIONS = "REQUEST_ALL_LOCATIONS"
    REQUEST_LOCATION = "REQUEST_LOCATION"
    DRIVER_LOCATION_UPDATE = "DRIVER_LOCATION_UPDATE"
    ORDER_CREATED = "ORDER_CREATED"
    ORDER_TAKEN = "ORDER_TAKEN"
    ORDER_ASSIGNED = "ORDER_ASSIGNED"
    ORDER_DELIVERED = "ORDER_DELIVERED"
    ORDER_UPDATED = "ORDER_UPDATED"
    ORDER_CANCELLED = "ORDER_CANCELLED"
    FORCE_LOGOUT = "FORCE_LOGOUT"
    ERROR = "ERROR"


def _envelope(message_type: MessageType, **payload: Any) -> Dict[str, Any]:
    return {"type": str(message_type), **payload}


def start_tracking() -> Dict[str, Any]:
    return _envelope(MessageType.START_TRACKING)


def stop_tracking() -> Dict[str, Any]:
    return _envelope(MessageType.STOP_TRACKING)


def request_location() -> Dict[str, Any]:
    return _envelope(MessageType.REQUEST_LOCATION)


def driver_location_update(
    driver_id: str,
    driver_name: str,
    latitude: float,
    longitude: float,
    accuracy: Optional[float],
    updated_at: str,
) -> Dict[str, Any]:
    return _envelope(
        MessageType.DRIVER_LOCATION_UPDATE,
        driverId=driver_id,
        driverName=driver_name,
        location={
            "latitude": latitude,
            "longitude": longitude,
            "accuracy": accuracy,
            "updatedAt": updated_at,
        },
    )


def order_created(order: Dict[str, Any]) -> Dict[str, Any]:
    return _envelope(MessageType.ORDER_CREATED, order=order)


def order_taken(
    order_id: str, driver_id: str, driver_name: str, order_number: str = ""
) -> Dict[str, Any]:
    return _envelope(
        MessageType.ORDER_TAKEN,
        orderId=order_id,
        orderNumber=order_number,
        driverId=driver_id,
        driverName=driver_name,
    )


def order_assigned(order: Dict[str, Any]) -> Dict[str, Any]:
    return _envelope(MessageType.ORDER_ASSIGNED, order=order)


def order_delivered(order: Dict[str, Any]) -> Dict[str, Any]:
    return _envelope(MessageType.ORDER_DELIVERED, order=order)


def order_updated(order: Dict[str, Any]) -> Dict[str, Any]:
    return _envelope(MessageType.ORDER_UPDATED, order=order)


def order_cancelled(order: Dict[str, Any]) -> Dict[str, Any]:
    return _envelope(MessageType.ORDER_CANCELLED, order=order)


def force_logout(message: str) -> Dict[str, Any]:
    return _envelope(MessageType.FORCE_LOGOUT, message=message)


def error(code: str, message: str) -> Dict[str, Any]:
    return _envelope(MessageType.ERROR, code=code, message=message)
