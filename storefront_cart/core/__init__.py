# Core modules

from .config import settings, Settings, get_settings
from .session import AuthSession, SessionState
from .storage import MemoryStorage, FileStorage, GuestCartStore
from .notifications import Notifier, Notification, NotificationLevel

__all__ = [
    "settings",
    "Settings",
    "get_settings",
    "AuthSession",
    "SessionState",
    "MemoryStorage",
    "FileStorage",
    "GuestCartStore",
    "Notifier",
    "Notification",
    "NotificationLevel",
]
