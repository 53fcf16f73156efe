"""Out-of-band push to driver devices.

Used to wake drivers whose app is not connected so they open a channel
and start reporting.  The sender is pluggable through
``PUSH_SENDER_CLASS``; the default only logs.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Protocol, Sequence

import structlog
from django.conf import settings
from django.utils.module_loading import import_string

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PushResult:
    success_count: int
    failure_count: int


class IPushSender(Protocol):
    def notify_all(self, tokens: Sequence[str], data: Dict[str, str]) -> PushResult: ...


class LoggingPushSender:
    """Sender for environments without a push provider."""

    def notify_all(self, tokens: Sequence[str], data: Dict[str, str]) -> PushResult:
        logger.info("push.logged", recipients=len(tokens), data=data)
        return PushResult(success_count=len(tokens), failure_count=0)


def get_push_sender() -> IPushSender:
    return import_string(settings.PUSH_SENDER_CLASS)()
