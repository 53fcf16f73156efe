"""In-memory event bus implementation."""

from __future__ import annotations

from functools import partial
from typing import Dict, List, Type

import structlog
from django.db import transaction

from shared.domain.bus import IEventBus, IEventHandler
from shared.domain.events import DomainEvent, DomainEventMixin

logger = structlog.get_logger(__name__)


class InMemoryEventBus(IEventBus):
    """Simple in-process event bus.

    A failing handler is logged and skipped; the remaining handlers still
    run and the publisher never sees the exception.
    """

    def __init__(self) -> None:
        self._handlers: Dict[Type[DomainEvent], List[IEventHandler]] = {}

    def subscribe(self, event_class: Type[DomainEvent], handler: IEventHandler) -> None:
        handlers = self._handlers.setdefault(event_class, [])
        if handler not in handlers:
            handlers.append(handler)

    def unsubscribe(self, event_class: Type[DomainEvent], handler: IEventHandler) -> None:
        handlers = self._handlers.get(event_class, [])
        if handler in handlers:
            handlers.remove(handler)

    def publish(self, event: DomainEvent) -> None:
        for handler in list(self._handlers.get(type(event), [])):
            try:
                handler.handle(event)
            except Exception:
                logger.exception(
                    "event_bus.handler_failed",
                    event_name=event.event_name,
                    aggregate_id=str(event.aggregate_id),
                    handler=type(handler).__name__,
                )


def publish_on_commit(bus: IEventBus, aggregate: DomainEventMixin) -> None:
    """Drain *aggregate*'s pending events and publish them after commit.

    Outside an atomic block Django runs the callbacks immediately.  Events
    of a rolled-back transaction are never published.
    """
    for event in aggregate.domain_events:
        transaction.on_commit(partial(bus.publish, event))
    aggregate.clear_domain_events()


# Global bus instance (singleton)

event_bus = InMemoryEventBus()
