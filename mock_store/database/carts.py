"""Cart storage for the mock store"""

import itertools
import logging
import uuid
from datetime import datetime, timedelta
from typing import Optional

from storefront_cart.models.cart import (
    BulkCartItem,
    Cart,
    CartItem,
    CartSummary,
    CartValidationResult,
    SaveForLaterResult,
    ShareCartResponse,
    ShippingAddress,
    ShippingEstimate,
    ShippingOption,
    ValidationIssue,
    ValidationIssueType,
)
from ..errors import InsufficientStockError, StoreError
from ..models.product import CatalogProduct
from .products import ProductDatabase

logger = logging.getLogger(__name__)

# Percentage discounts
COUPONS: dict[str, float] = {
    "SAVE10": 0.10,
    "SAVE20": 0.20,
    "WELCOME15": 0.15,
}

SHIPPING_OPTIONS: list[ShippingOption] = [
    ShippingOption(
        method="STANDARD",
        name="Standard Shipping",
        cost=5.99,
        min_days=5,
        max_days=7,
        description="Delivered in 5-7 business days",
    ),
    ShippingOption(
        method="EXPRESS",
        name="Express Shipping",
        cost=14.99,
        min_days=2,
        max_days=3,
        description="Delivered in 2-3 business days",
    ),
    ShippingOption(
        method="OVERNIGHT",
        name="Overnight Shipping",
        cost=29.99,
        min_days=1,
        max_days=1,
        description="Delivered next business day",
    ),
]

SHARE_LINK_TTL = timedelta(days=7)


class CartDatabase:
    """In-memory cart storage"""

    def __init__(self, product_db: ProductDatabase, free_shipping_threshold: float = 50.0):
        self.product_db = product_db
        self.free_shipping_threshold = free_shipping_threshold
        self.carts: dict[str, Cart] = {}
        self.user_carts: dict[str, str] = {}
        self.shared_carts: dict[str, str] = {}
        self.wishlists: dict[str, list[str]] = {}
        self._cart_ids = itertools.count(100)
        self._item_ids = itertools.count(1)

    # ==================== Carts ====================

    def create_cart(self, username: Optional[str] = None) -> Cart:
        """Create a new cart; a user keeps a single active cart"""
        if username:
            existing = self.get_user_cart(username)
            if existing:
                return existing

        now = datetime.utcnow()
        cart = Cart(
            id=str(next(self._cart_ids)),
            items=[],
            date_created=now,
            updated_at=now,
        )
        self.carts[cart.id] = cart
        if username:
            self.user_carts[username] = cart.id
        logger.info(f"Created cart {cart.id} for {username or 'guest'}")
        return cart

    def get_cart(self, cart_id: str) -> Optional[Cart]:
        """Get a cart by ID"""
        return self.carts.get(str(cart_id))

    def get_user_cart(self, username: str) -> Optional[Cart]:
        cart_id = self.user_carts.get(username)
        return self.carts.get(cart_id) if cart_id else None

    def delete_cart(self, cart_id: str) -> bool:
        """Delete a cart"""
        if cart_id in self.carts:
            del self.carts[cart_id]
            return True
        return False

    # ==================== Items ====================

    def _require_product(self, product_id: str) -> CatalogProduct:
        product = self.product_db.get_product(product_id)
        if not product:
            raise StoreError(404, "Product not found", {"field": "productId"})
        return product

    @staticmethod
    def _is_sellable(product: CatalogProduct) -> bool:
        return product.in_stock and product.stock_quantity > 0

    @classmethod
    def _check_stock(cls, product: CatalogProduct, quantity: int) -> None:
        available = product.stock_quantity if cls._is_sellable(product) else 0
        if available < quantity:
            raise InsufficientStockError(product.name, available, quantity)

    @staticmethod
    def _find_item_by_product(cart: Cart, product_id: str) -> Optional[CartItem]:
        return next((item for item in cart.items if item.product.id == product_id), None)

    def add_item(self, cart: Cart, product_id: str, quantity: int = 1) -> Cart:
        """Add an item, summing with an existing line for the same product"""
        product = self._require_product(product_id)
        existing_item = self._find_item_by_product(cart, product.id)
        requested = quantity + (existing_item.quantity if existing_item else 0)
        self._check_stock(product, requested)

        if existing_item:
            existing_item.quantity = requested
            existing_item.product = product.snapshot()
        else:
            cart.items.append(self._new_item(product, quantity))

        self._recalculate_totals(cart)
        return cart

    def bulk_add(self, cart: Cart, entries: list[BulkCartItem]) -> Cart:
        """Add several items; nothing is added unless all of them fit"""
        requested: dict[str, int] = {}
        for entry in entries:
            requested[entry.product_id] = requested.get(entry.product_id, 0) + entry.quantity

        for product_id, quantity in requested.items():
            product = self._require_product(product_id)
            existing_item = self._find_item_by_product(cart, product.id)
            self._check_stock(product, quantity + (existing_item.quantity if existing_item else 0))

        for product_id, quantity in requested.items():
            self.add_item(cart, product_id, quantity)
        return cart

    def update_item_quantity(self, cart: Cart, item_id: str, quantity: int) -> Optional[Cart]:
        """Set an item's quantity; None when the item is not in the cart"""
        item = cart.find_item(item_id)
        if not item:
            return None

        product = self._require_product(item.product.id)
        self._check_stock(product, quantity)
        item.quantity = quantity
        item.product = product.snapshot()

        self._recalculate_totals(cart)
        return cart

    def remove_item(self, cart: Cart, item_id: str) -> Optional[Cart]:
        """Remove an item from the cart"""
        if not cart.find_item(item_id):
            return None

        cart.items = [item for item in cart.items if item.id != str(item_id)]
        self._recalculate_totals(cart)
        return cart

    def clear_cart(self, cart: Cart) -> Cart:
        """Clear all items from cart"""
        cart.items = []
        self._recalculate_totals(cart)
        return cart

    def _new_item(self, product: CatalogProduct, quantity: int) -> CartItem:
        return CartItem(
            id=str(next(self._item_ids)),
            product=product.snapshot(),
            quantity=quantity,
            unit_price=product.price,
            total_price=round(product.price * quantity, 2),
        )

    # ==================== Merge ====================

    def merge(self, guest_cart_id: str, username: str) -> Cart:
        """
        Combine a guest cart with the user's cart into a new cart.

        Lines for the same product are summed and capped at available
        stock. Both source carts are discarded.
        """
        guest_cart = self.get_cart(guest_cart_id)
        if not guest_cart:
            raise StoreError(404, "Cart not found", {"field": "guestCartId"})

        user_cart = self.get_user_cart(username)
        # Merging a user's own cart into itself counts each line once
        if user_cart is not None and user_cart.id == guest_cart.id:
            user_cart = None
        sources = [c for c in (user_cart, guest_cart) if c is not None]

        now = datetime.utcnow()
        merged = Cart(id=str(next(self._cart_ids)), items=[], date_created=now, updated_at=now)
        for source in sources:
            for item in source.items:
                product = self.product_db.get_product(item.product.id)
                if not product or not self._is_sellable(product):
                    continue
                existing_item = self._find_item_by_product(merged, product.id)
                if existing_item:
                    existing_item.quantity = min(
                        existing_item.quantity + item.quantity, product.stock_quantity
                    )
                else:
                    merged.items.append(
                        self._new_item(product, min(item.quantity, product.stock_quantity))
                    )
            if source.coupon_code and not merged.coupon_code:
                merged.coupon_code = source.coupon_code
            self.delete_cart(source.id)

        self.carts[merged.id] = merged
        self.user_carts[username] = merged.id
        self._recalculate_totals(merged)
        logger.info(
            f"Merged carts {[s.id for s in sources]} into {merged.id} for {username}"
        )
        return merged

    # ==================== Coupons ====================

    def apply_coupon(self, cart: Cart, coupon_code: str) -> Cart:
        code = coupon_code.strip().upper()
        if code not in COUPONS:
            raise StoreError(400, f"Invalid coupon code: {coupon_code}", {"field": "couponCode"})

        cart.coupon_code = code
        self._recalculate_totals(cart)
        return cart

    def remove_coupon(self, cart: Cart) -> Cart:
        cart.coupon_code = None
        self._recalculate_totals(cart)
        return cart

    # ==================== Insights ====================

    def validate(self, cart: Cart) -> CartValidationResult:
        """Compare cart lines with the current catalog"""
        issues: list[ValidationIssue] = []
        updated_subtotal = 0.0

        for item in cart.items:
            product = self.product_db.get_product(item.product.id)
            if not product:
                issues.append(ValidationIssue(
                    type=ValidationIssueType.ITEM_UNAVAILABLE,
                    product_id=item.product.id,
                    product_name=item.product.name,
                    message=f"{item.product.name} is no longer available",
                ))
                continue

            if not self._is_sellable(product):
                issues.append(ValidationIssue(
                    type=ValidationIssueType.OUT_OF_STOCK,
                    product_id=product.id,
                    product_name=product.name,
                    message=f"{product.name} is out of stock",
                    requested_quantity=item.quantity,
                    available_quantity=0,
                ))
                continue

            quantity = item.quantity
            if product.stock_quantity < item.quantity:
                quantity = product.stock_quantity
                issues.append(ValidationIssue(
                    type=ValidationIssueType.INSUFFICIENT_STOCK,
                    product_id=product.id,
                    product_name=product.name,
                    message=f"Only {product.stock_quantity} of {product.name} available",
                    requested_quantity=item.quantity,
                    available_quantity=product.stock_quantity,
                ))

            if product.price != item.unit_price:
                issues.append(ValidationIssue(
                    type=ValidationIssueType.PRICE_CHANGED,
                    product_id=product.id,
                    product_name=product.name,
                    message=f"Price of {product.name} changed",
                    old_price=item.unit_price,
                    new_price=product.price,
                ))

            updated_subtotal += product.price * quantity

        updated_total = round(updated_subtotal - self._discount_for(cart, updated_subtotal), 2)
        types = {issue.type for issue in issues}
        return CartValidationResult(
            valid=not issues,
            message="Cart is valid" if not issues else f"Cart has {len(issues)} issue(s)",
            issues=issues,
            original_total=cart.total_price,
            updated_total=updated_total,
            price_changed=ValidationIssueType.PRICE_CHANGED in types,
            stock_changed=bool(types & {
                ValidationIssueType.OUT_OF_STOCK,
                ValidationIssueType.INSUFFICIENT_STOCK,
                ValidationIssueType.ITEM_UNAVAILABLE,
            }),
        )

    def summary(self, cart: Cart) -> CartSummary:
        return CartSummary(
            id=cart.id,
            status=cart.status,
            item_count=cart.item_count,
            unique_item_count=len(cart.items),
            subtotal=cart.subtotal,
            discount=cart.discount,
            total_price=cart.total_price,
            coupon_code=cart.coupon_code,
        )

    def estimate_shipping(self, cart: Cart, address: ShippingAddress) -> ShippingEstimate:
        options = [
            option.model_copy(update={"cost": 0.0})
            if option.method == "STANDARD" and cart.subtotal >= self.free_shipping_threshold
            else option
            for option in SHIPPING_OPTIONS
        ]
        method = (address.shipping_method or "STANDARD").upper()
        selected = next((o for o in options if o.method == method), None)
        if selected is None:
            raise StoreError(400, f"Unknown shipping method: {address.shipping_method}",
                             {"field": "shippingMethod"})

        return ShippingEstimate(
            cost=selected.cost,
            estimated_days=selected.max_days,
            method=selected.method,
            available_options=options,
        )

    # ==================== Sharing / Wishlist ====================

    def share(self, cart: Cart) -> ShareCartResponse:
        token = uuid.uuid4().hex
        self.shared_carts[token] = cart.id
        return ShareCartResponse(share_token=token, expires_at=datetime.utcnow() + SHARE_LINK_TTL)

    def get_shared(self, share_token: str) -> Optional[Cart]:
        cart_id = self.shared_carts.get(share_token)
        return self.get_cart(cart_id) if cart_id else None

    def save_for_later(self, cart: Cart, username: str) -> SaveForLaterResult:
        """Move every cart line to the user's wishlist"""
        wishlist = self.wishlists.setdefault(username, [])
        saved = 0
        for item in cart.items:
            if item.product.id not in wishlist:
                wishlist.append(item.product.id)
            saved += 1

        self.clear_cart(cart)
        return SaveForLaterResult(
            cart_id=cart.id,
            saved_count=saved,
            message=f"{saved} item(s) moved to wishlist",
        )

    # ==================== Totals ====================

    @staticmethod
    def _discount_for(cart: Cart, subtotal: float) -> float:
        rate = COUPONS.get(cart.coupon_code or "", 0.0)
        return round(subtotal * rate, 2)

    def _recalculate_totals(self, cart: Cart) -> None:
        """Recalculate cart totals"""
        for item in cart.items:
            item.total_price = round(item.unit_price * item.quantity, 2)
        cart.item_count = sum(item.quantity for item in cart.items)
        cart.subtotal = round(sum(item.total_price for item in cart.items), 2)
        cart.discount = self._discount_for(cart, cart.subtotal)
        cart.total_price = round(cart.subtotal - cart.discount, 2)
        cart.updated_at = datetime.utcnow()
