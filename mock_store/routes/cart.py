"""Cart API routes for the mock store"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from storefront_cart.models.cart import Cart, ShippingAddress
from ..database.carts import CartDatabase
from ..errors import StoreError, success_response
from ..models.requests import (
    AddToCartRequest,
    ApplyCouponRequest,
    BulkAddToCartRequest,
    MergeCartRequest,
    UpdateCartItemRequest,
)

router = APIRouter(prefix="/api/v1/carts", tags=["Cart"])


def get_cart_db(request: Request) -> CartDatabase:
    return request.app.state.cart_db


def get_cart_or_404(cart_id: str, cart_db: CartDatabase = Depends(get_cart_db)) -> Cart:
    cart = cart_db.get_cart(cart_id)
    if not cart:
        raise StoreError(404, "Cart not found")
    return cart


@router.post("")
async def create_cart(
    username: Optional[str] = Query(None),
    cart_db: CartDatabase = Depends(get_cart_db),
):
    """Create a new shopping cart"""
    return success_response(cart_db.create_cart(username), message="Cart created")


@router.get("/me")
async def get_my_cart(
    username: str = Query(...),
    cart_db: CartDatabase = Depends(get_cart_db),
):
    """Get the cart of a user account"""
    cart = cart_db.get_user_cart(username)
    if not cart:
        raise StoreError(404, "Cart not found")
    return success_response(cart)


@router.post("/merge")
async def merge_carts(
    request: MergeCartRequest,
    username: str = Query(...),
    cart_db: CartDatabase = Depends(get_cart_db),
):
    """Merge a guest cart into the user's cart"""
    return success_response(
        cart_db.merge(request.guest_cart_id, username), message="Carts merged"
    )


@router.get("/shared/{share_token}")
async def get_shared_cart(share_token: str, cart_db: CartDatabase = Depends(get_cart_db)):
    cart = cart_db.get_shared(share_token)
    if not cart:
        raise StoreError(404, "Shared cart not found")
    return success_response(cart)


@router.get("/{cart_id}")
async def get_cart(cart: Cart = Depends(get_cart_or_404)):
    """Get cart by ID"""
    return success_response(cart)


@router.post("/{cart_id}/items")
async def add_to_cart(
    request: AddToCartRequest,
    cart: Cart = Depends(get_cart_or_404),
    cart_db: CartDatabase = Depends(get_cart_db),
):
    """Add an item to the cart"""
    updated_cart = cart_db.add_item(cart, request.product_id, request.quantity)
    return success_response(updated_cart, message="Item added")


@router.post("/{cart_id}/items/bulk")
async def bulk_add_to_cart(
    request: BulkAddToCartRequest,
    cart: Cart = Depends(get_cart_or_404),
    cart_db: CartDatabase = Depends(get_cart_db),
):
    updated_cart = cart_db.bulk_add(cart, request.items)
    return success_response(updated_cart, message=f"{len(request.items)} items added")


@router.put("/{cart_id}/items/{item_id}")
async def update_cart_item(
    item_id: str,
    request: UpdateCartItemRequest,
    cart: Cart = Depends(get_cart_or_404),
    cart_db: CartDatabase = Depends(get_cart_db),
):
    """Update item quantity in cart"""
    updated_cart = cart_db.update_item_quantity(cart, item_id, request.quantity)
    if not updated_cart:
        raise StoreError(404, "Item not in cart")
    return success_response(updated_cart, message="Cart updated")


@router.delete("/{cart_id}/items/{item_id}")
async def remove_from_cart(
    item_id: str,
    cart: Cart = Depends(get_cart_or_404),
    cart_db: CartDatabase = Depends(get_cart_db),
):
    """Remove an item from the cart"""
    updated_cart = cart_db.remove_item(cart, item_id)
    if not updated_cart:
        raise StoreError(404, "Item not in cart")
    return success_response(updated_cart, message="Item removed")


@router.delete("/{cart_id}/items")
async def clear_cart(
    cart: Cart = Depends(get_cart_or_404),
    cart_db: CartDatabase = Depends(get_cart_db),
):
    """Clear all items from cart"""
    return success_response(cart_db.clear_cart(cart), message="Cart cleared")


@router.post("/{cart_id}/coupons")
async def apply_coupon(
    request: ApplyCouponRequest,
    cart: Cart = Depends(get_cart_or_404),
    cart_db: CartDatabase = Depends(get_cart_db),
):
    updated_cart = cart_db.apply_coupon(cart, request.coupon_code)
    return success_response(updated_cart, message="Coupon applied")


@router.delete("/{cart_id}/coupons")
async def remove_coupon(
    cart: Cart = Depends(get_cart_or_404),
    cart_db: CartDatabase = Depends(get_cart_db),
):
    return success_response(cart_db.remove_coupon(cart), message="Coupon removed")


@router.post("/{cart_id}/validate")
async def validate_cart(
    cart: Cart = Depends(get_cart_or_404),
    cart_db: CartDatabase = Depends(get_cart_db),
):
    """Check cart lines against current stock and prices"""
    return success_response(cart_db.validate(cart))


@router.get("/{cart_id}/summary")
async def get_cart_summary(
    cart: Cart = Depends(get_cart_or_404),
    cart_db: CartDatabase = Depends(get_cart_db),
):
    return success_response(cart_db.summary(cart))


@router.post("/{cart_id}/estimate-shipping")
async def estimate_shipping(
    address: ShippingAddress,
    cart: Cart = Depends(get_cart_or_404),
    cart_db: CartDatabase = Depends(get_cart_db),
):
    return success_response(cart_db.estimate_shipping(cart, address))


@router.post("/{cart_id}/share")
async def share_cart(
    cart: Cart = Depends(get_cart_or_404),
    cart_db: CartDatabase = Depends(get_cart_db),
):
    return success_response(cart_db.share(cart))


@router.post("/{cart_id}/save-for-later")
async def save_for_later(
    username: str = Query(...),
    cart: Cart = Depends(get_cart_or_404),
    cart_db: CartDatabase = Depends(get_cart_db),
):
    """Move cart items to the user's wishlist"""
    return success_response(cart_db.save_for_later(cart, username))
