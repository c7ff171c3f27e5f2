# Services

from .api_client import (
    CartApiClient,
    CartApiError,
    StockLimitedError,
    NotFoundError,
    NetworkError,
)
from .cart_manager import CartManager, stock_limited_message

__all__ = [
    "CartApiClient",
    "CartApiError",
    "StockLimitedError",
    "NotFoundError",
    "NetworkError",
    "CartManager",
    "stock_limited_message",
]
