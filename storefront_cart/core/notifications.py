"""User-facing notifications raised by cart operations"""

import logging
from datetime import datetime
from typing import Callable
from dataclasses import dataclass, field
from enum import Enum

logger = logging.getLogger(__name__)


class NotificationLevel(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class Notification:
    """A message meant for the shopper"""
    level: NotificationLevel
    message: str
    created_at: datetime = field(default_factory=datetime.utcnow)


class Notifier:
    """
    Collects notifications and fans them out to subscribers.

    A UI layer subscribes to render toasts; tests read `history`.
    """

    def __init__(self):
        self.history: list[Notification] = []
        self._listeners: list[Callable[[Notification], None]] = []

    def subscribe(self, listener: Callable[[Notification], None]) -> None:
        """Register a callback invoked for every notification"""
        self._listeners.append(listener)

    def success(self, message: str) -> None:
        self._emit(Notification(level=NotificationLevel.SUCCESS, message=message))

    def error(self, message: str) -> None:
        self._emit(Notification(level=NotificationLevel.ERROR, message=message))

    @property
    def errors(self) -> list[str]:
        return [n.message for n in self.history if n.level == NotificationLevel.ERROR]

    @property
    def successes(self) -> list[str]:
        return [n.message for n in self.history if n.level == NotificationLevel.SUCCESS]

    def clear(self) -> None:
        self.history.clear()

    def _emit(self, notification: Notification) -> None:
        if notification.level == NotificationLevel.ERROR:
            logger.warning(f"Notify error: {notification.message}")
        else:
            logger.info(f"Notify success: {notification.message}")

        self.history.append(notification)
        for listener in self._listeners:
            listener(notification)
