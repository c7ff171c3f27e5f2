# Mock Store Models

from .product import CatalogProduct, ProductCategory
from .requests import (
    AddToCartRequest,
    BulkAddToCartRequest,
    UpdateCartItemRequest,
    MergeCartRequest,
    ApplyCouponRequest,
)

__all__ = [
    "CatalogProduct",
    "ProductCategory",
    "AddToCartRequest",
    "BulkAddToCartRequest",
    "UpdateCartItemRequest",
    "MergeCartRequest",
    "ApplyCouponRequest",
]
