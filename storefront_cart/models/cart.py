"""Cart wire models shared by the client and the mock store"""

import logging
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)


class ApiModel(BaseModel):
    """Base for camelCase JSON payloads; numeric ids are read as strings"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )


class Product(ApiModel):
    """Product snapshot embedded in a cart item"""
    id: str
    name: str
    price: float
    description: Optional[str] = None
    image_url: Optional[str] = None
    in_stock: Optional[bool] = None
    stock_quantity: Optional[int] = None


class CartItem(ApiModel):
    """Line item in a cart, keyed by its own id"""
    id: str
    product: Product
    quantity: int = Field(gt=0)
    unit_price: float
    total_price: float


class Cart(ApiModel):
    """Shopping cart as returned by the cart API"""
    id: str
    status: str = "active"
    items: list[CartItem] = Field(default_factory=list)
    item_count: int = 0
    subtotal: float = 0.0
    discount: float = 0.0
    total_price: float = 0.0
    coupon_code: Optional[str] = None
    date_created: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _derive_item_count(self) -> "Cart":
        quantity_sum = sum(item.quantity for item in self.items)
        if self.item_count != quantity_sum:
            logger.warning(
                f"Cart {self.id} reported itemCount={self.item_count}, "
                f"items sum to {quantity_sum}"
            )
            self.item_count = quantity_sum
        return self

    def find_item(self, item_id: str) -> Optional[CartItem]:
        return next((item for item in self.items if item.id == str(item_id)), None)


class CartSummary(ApiModel):
    """Lightweight cart totals"""
    id: str
    status: str = "active"
    item_count: int = 0
    unique_item_count: int = 0
    subtotal: float = 0.0
    discount: float = 0.0
    total_price: float = 0.0
    coupon_code: Optional[str] = None


class BulkCartItem(ApiModel):
    """One entry of a bulk add request"""
    product_id: str
    quantity: int = Field(default=1, gt=0)


class ValidationIssueType(str, Enum):
    OUT_OF_STOCK = "OUT_OF_STOCK"
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
    PRICE_CHANGED = "PRICE_CHANGED"
    ITEM_UNAVAILABLE = "ITEM_UNAVAILABLE"


class ValidationIssue(ApiModel):
    type: ValidationIssueType
    product_id: str
    product_name: str
    message: str
    requested_quantity: Optional[int] = None
    available_quantity: Optional[int] = None
    old_price: Optional[float] = None
    new_price: Optional[float] = None


class CartValidationResult(ApiModel):
    """Outcome of re-checking a cart against current stock and prices"""
    valid: bool
    message: str
    issues: list[ValidationIssue] = Field(default_factory=list)
    original_total: float = 0.0
    updated_total: float = 0.0
    price_changed: bool = False
    stock_changed: bool = False


class ShippingAddress(ApiModel):
    country: str
    state: str
    postal_code: str
    city: Optional[str] = None
    shipping_method: Optional[str] = None


class ShippingOption(ApiModel):
    method: str
    name: str
    cost: float
    min_days: int
    max_days: int
    description: str


class ShippingEstimate(ApiModel):
    cost: float
    currency: str = "USD"
    estimated_days: int
    method: str
    available_options: list[ShippingOption] = Field(default_factory=list)


class ShareCartResponse(ApiModel):
    share_token: str
    expires_at: Optional[datetime] = None


class SaveForLaterResult(ApiModel):
    cart_id: str
    saved_count: int
    message: Optional[str] = None
