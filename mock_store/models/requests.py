"""Request bodies accepted by the mock cart API"""

from pydantic import Field

from storefront_cart.models.cart import ApiModel, BulkCartItem


class AddToCartRequest(ApiModel):
    """Request to add item to cart"""
    product_id: str
    quantity: int = Field(default=1, gt=0)


class BulkAddToCartRequest(ApiModel):
    items: list[BulkCartItem] = Field(min_length=1)


class UpdateCartItemRequest(ApiModel):
    """Request to update cart item quantity"""
    quantity: int = Field(gt=0)


class MergeCartRequest(ApiModel):
    guest_cart_id: str


class ApplyCouponRequest(ApiModel):
    coupon_code: str = Field(min_length=1)
