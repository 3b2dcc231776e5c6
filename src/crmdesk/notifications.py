"""Transient user-visible messages.

The desk pages report failures once, as a short message the user sees and
dismisses. Notifier collects those messages until the page drains them.
"""

from __future__ import annotations

from collections import deque
from datetime import datetime, timezone
from enum import Enum

import structlog
from pydantic import BaseModel, Field

logger = structlog.get_logger(__name__)


class NotificationLevel(str, Enum):
    INFO = "info"
    ERROR = "error"


class Notification(BaseModel):
    """A single message shown to the user."""

    level: NotificationLevel
    message: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Notifier:
    """Bounded queue of pending notifications.

    Oldest messages are dropped once ``backlog`` is exceeded.
    """

    def __init__(self, backlog: int = 50) -> None:
        self._pending: deque[Notification] = deque(maxlen=backlog)

    def info(self, message: str) -> Notification:
        return self._push(NotificationLevel.INFO, message)

    def error(self, message: str) -> Notification:
        return self._push(NotificationLevel.ERROR, message)

    def _push(self, level: NotificationLevel, message: str) -> Notification:
        notification = Notification(level=level, message=message)
        self._pending.append(notification)
        logger.info("notifications.pushed", level=level.value, message=message)
        return notification

    def peek(self) -> list[Notification]:
        """Return pending notifications without consuming them."""
        return list(self._pending)

    def drain(self) -> list[Notification]:
        """Return and clear all pending notifications, oldest first."""
        drained = list(self._pending)
        self._pending.clear()
        return drained

    def __len__(self) -> int:
        return len(self._pending)
