"""
Storefront Cart

Client-side cart core for the storefront: guest and user carts,
optimistic updates, and guest-to-user cart merging against the cart API.
"""

from .core import AuthSession, GuestCartStore, MemoryStorage, FileStorage, Notifier, settings
from .services import (
    CartManager,
    CartApiClient,
    CartApiError,
    StockLimitedError,
    NotFoundError,
    NetworkError,
)

__version__ = "1.0.0"

__all__ = [
    "AuthSession",
    "GuestCartStore",
    "MemoryStorage",
    "FileStorage",
    "Notifier",
    "settings",
    "CartManager",
    "CartApiClient",
    "CartApiError",
    "StockLimitedError",
    "NotFoundError",
    "NetworkError",
]
