# Cart models

from .cart import (
    ApiModel,
    Product,
    CartItem,
    Cart,
    CartSummary,
    BulkCartItem,
    ValidationIssue,
    ValidationIssueType,
    CartValidationResult,
    ShippingAddress,
    ShippingOption,
    ShippingEstimate,
    ShareCartResponse,
    SaveForLaterResult,
)

__all__ = [
    "ApiModel",
    "Product",
    "CartItem",
    "Cart",
    "CartSummary",
    "BulkCartItem",
    "ValidationIssue",
    "ValidationIssueType",
    "CartValidationResult",
    "ShippingAddress",
    "ShippingOption",
    "ShippingEstimate",
    "ShareCartResponse",
    "SaveForLaterResult",
]
