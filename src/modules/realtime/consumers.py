"""WebSocket endpoint for admins and drivers.

A client opens ``ws/`` and sends ``register`` with ``{userId, role, name}``.
The consumer keeps one ``ConsumerChannel`` for its lifetime; the registry
and router only ever see that handle, never the consumer itself.
"""

from __future__ import annotations

import asyncio
from concurrent.futures import Future
from typing import Any, Dict, Optional

import structlog
from asgiref.sync import sync_to_async
from django.apps import apps
from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer

from modules.core.exceptions import DomainError
from modules.realtime import messages
from modules.realtime.exceptions import ChannelUnavailable
from modules.realtime.messages import MessageType
from modules.realtime.registry import Registration, Role

logger = structlog.get_logger(__name__)


class ConsumerChannel:
    """Channel handle bound to one consumer's event loop.

    ``send`` may be called from any thread.  It schedules the write and
    returns immediately; a failed write is logged when it completes.
    """

    def __init__(
        self, consumer: AsyncJsonWebsocketConsumer, loop: asyncio.AbstractEventLoop
    ) -> None:
        self._consumer = consumer
        self._loop = loop
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed or self._loop.is_closed()

    def send(self, message: Dict[str, Any]) -> None:
        if self.closed:
            raise ChannelUnavailable()
        future = asyncio.run_coroutine_threadsafe(
            self._consumer.send_json(message), self._loop
        )
        future.add_done_callback(self._log_failure)

    def close(self) -> None:
        self._closed = True

    @staticmethod
    def _log_failure(future: Future) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.warning("channel.write_failed", error=str(exc))


class DispatchConsumer(AsyncJsonWebsocketConsumer):
    async def connect(self) -> None:
        self.realtime = apps.get_app_config("realtime")
        self.outbound = ConsumerChannel(self, asyncio.get_running_loop())
        self.registration: Optional[Registration] = None
        await self.accept()

    async def disconnect(self, code: int) -> None:
        self.outbound.close()
        await sync_to_async(self.realtime.coordinator.disconnect)(self.outbound)

    async def receive_json(self, content: Any, **kwargs: Any) -> None:
        if not isinstance(content, dict):
            await self.send_json(
                messages.error("INVALID_MESSAGE", "Expected a JSON object.")
            )
            return

        message_type = content.get("type")
        if message_type == MessageType.REGISTER:
            await self._register(content)
        elif message_type == MessageType.START_TRACKING:
            await sync_to_async(self.realtime.coordinator.subscribe)(self.outbound)
        elif message_type == MessageType.STOP_TRACKING:
            await sync_to_async(self.realtime.coordinator.unsubscribe)(self.outbound)
        elif message_type == MessageType.REQUEST_ALL_LOCATIONS:
            await self._request_all_locations()
        elif message_type == MessageType.DRIVER_LOCATION_UPDATE:
            await self._report_location(content)
        else:
            logger.warning("channel.unknown_message", message_type=message_type)

    async def _register(self, content: Dict[str, Any]) -> None:
        actor_id = content.get("userId")
        if not actor_id:
            await self.send_json(
                messages.error("INVALID_REGISTER", "userId is required.")
            )
            return

        coordinator = self.realtime.coordinator
        if self.registration is not None and self.registration.actor_id != str(actor_id):
            await sync_to_async(coordinator.disconnect)(self.outbound)

        role = Role.parse(content.get("role"))
        self.registration = await sync_to_async(coordinator.register)(
            str(actor_id), role, content.get("name") or "", self.outbound
        )
        structlog.contextvars.bind_contextvars(actor_id=str(actor_id), role=str(role))

    async def _request_all_locations(self) -> None:
        if self.registration is None or self.registration.role != Role.ADMIN:
            logger.warning("channel.request_locations_rejected")
            return
        await sync_to_async(self.realtime.coordinator.request_all_locations_now)()

    async def _report_location(self, content: Dict[str, Any]) -> None:
        if self.registration is None or self.registration.role != Role.DRIVER:
            logger.warning("channel.location_rejected")
            return

        location = content.get("location") or content
        if not isinstance(location, dict):
            await self.send_json(
                messages.error("INVALID_LOCATION", "location must be an object.")
            )
            return

        ingest = self.realtime.ingest_service()
        try:
            await database_sync_to_async(ingest.report_location)(
                self.registration.actor_id,
                location.get("latitude"),
                location.get("longitude"),
                location.get("accuracy"),
            )
        except DomainError as exc:
            await self.send_json(messages.error(exc.code, exc.detail))
