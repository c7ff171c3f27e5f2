"""
Cart Manager

Owns the shopper's cart: which cart is active (guest or user), the local
copy of it, and every operation that changes it. The server is the single
source of truth; each successful call replaces the local cart with the
returned snapshot.

Failures never escape an operation. They become notifications on the
injected Notifier (or log lines for background reads).
"""

import asyncio
import logging
from typing import Optional, Iterable

import httpx

from ..core.config import Settings
from ..core.notifications import Notifier
from ..core.session import AuthSession
from ..core.storage import FileStorage, GuestCartStore, MemoryStorage
from ..models.cart import (
    BulkCartItem,
    Cart,
    CartItem,
    CartSummary,
    CartValidationResult,
    ShippingAddress,
    ShippingEstimate,
)
from .api_client import CartApiClient, CartApiError, NotFoundError, StockLimitedError

logger = logging.getLogger(__name__)


def stock_limited_message(available_quantity: int) -> str:
    return f"Only {available_quantity} items available in stock"


class CartManager:
    """
    Session-scoped cart state machine.

    Mutations are sequenced through a single lock, so overlapping calls
    apply in the order they were issued.
    """

    def __init__(
        self,
        client: CartApiClient,
        cart_store: GuestCartStore,
        notifier: Optional[Notifier] = None,
        session: Optional[AuthSession] = None,
        storefront_url: str = "http://localhost:3000",
    ):
        self.client = client
        self.cart_store = cart_store
        self.notifier = notifier or Notifier()
        self.session = session or AuthSession()
        self.storefront_url = storefront_url.rstrip("/")

        self._cart: Optional[Cart] = None
        self._items: list[CartItem] = []
        self._loading = True
        self._initialized = False
        self._mutation_lock = asyncio.Lock()

        self.validation_result: Optional[CartValidationResult] = None
        self.shipping_estimate: Optional[ShippingEstimate] = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        notifier: Optional[Notifier] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "CartManager":
        """Wire a manager with the default client and storage"""
        storage = FileStorage(settings.storage_path) if settings.persistent_storage else MemoryStorage()
        return cls(
            client=CartApiClient.from_settings(settings, transport=transport),
            cart_store=GuestCartStore(storage, key=settings.cart_storage_key),
            notifier=notifier,
            storefront_url=settings.storefront_url,
        )

    # ==================== State ====================

    @property
    def cart(self) -> Optional[Cart]:
        return self._cart

    @property
    def items(self) -> list[CartItem]:
        """Current items; the same list object until the cart changes"""
        return self._items

    @property
    def item_count(self) -> int:
        return self._cart.item_count if self._cart else 0

    @property
    def subtotal(self) -> float:
        return self._cart.subtotal if self._cart else 0.0

    @property
    def discount(self) -> float:
        return self._cart.discount if self._cart else 0.0

    @property
    def total(self) -> float:
        return self._cart.total_price if self._cart else 0.0

    @property
    def cart_id(self) -> Optional[str]:
        return self._cart.id if self._cart else None

    @property
    def loading(self) -> bool:
        return self._loading

    def _set_cart(self, cart: Optional[Cart]) -> None:
        if cart is self._cart:
            return
        self._cart = cart
        self._items = cart.items if cart else []

    # ==================== Initialization ====================

    async def initialize(self) -> None:
        """Resolve the initial cart. Only the first call does any work."""
        if self._initialized:
            return
        self._initialized = True

        try:
            cart = await self._resolve_cart()
            self._set_cart(cart)
        except CartApiError as e:
            logger.error(f"Failed to initialize cart: {e}")
            self.notifier.error("Failed to load cart")
        finally:
            self._loading = False

    async def _resolve_cart(self) -> Cart:
        """
        Find the cart this session should use.

        Order: the signed-in user's cart, then the persisted guest cart,
        then a freshly created one. A stale guest id is dropped silently.
        """
        if self.session.is_authenticated:
            try:
                return await self.client.get_my_cart(self.session.username)
            except NotFoundError:
                logger.info("No existing user cart, creating one")

        stored_cart_id = self.cart_store.get_cart_id()
        if stored_cart_id:
            try:
                return await self.client.get_cart(stored_cart_id)
            except NotFoundError:
                logger.info(f"Stored cart {stored_cart_id} not found, starting a new cart")
                self.cart_store.clear()

        return await self._create_cart()

    async def _create_cart(self) -> Cart:
        if self.session.is_authenticated:
            return await self.client.create_cart(username=self.session.username)

        cart = await self.client.create_cart()
        self.cart_store.set_cart_id(cart.id)
        return cart

    async def _ensure_cart_id(self) -> str:
        if self._cart is None:
            self._set_cart(await self._create_cart())
        return self._cart.id

    # ==================== Fetch Cart ====================

    async def fetch_cart(self) -> None:
        """Re-read the current cart from the server"""
        try:
            if self._cart is None:
                self._set_cart(await self._resolve_cart())
                return
            try:
                self._set_cart(await self.client.get_cart(self._cart.id))
            except NotFoundError:
                logger.info(f"Cart {self._cart.id} disappeared, resolving a new one")
                if self.cart_store.get_cart_id() == self._cart.id:
                    self.cart_store.clear()
                self._set_cart(None)
                self._set_cart(await self._resolve_cart())
        except CartApiError as e:
            logger.error(f"Failed to fetch cart: {e}")

    load_cart = fetch_cart

    # ==================== Add to Cart ====================

    async def add_to_cart(self, product_id: str, quantity: int = 1) -> None:
        if quantity < 1:
            self.notifier.error("Quantity must be at least 1")
            return

        async with self._mutation_lock:
            try:
                cart_id = await self._ensure_cart_id()
                cart = await self.client.add_item(cart_id, str(product_id), quantity)
            except StockLimitedError as e:
                logger.info(f"Add to cart limited by stock: {e}")
                self.notifier.error(stock_limited_message(e.available_quantity))
                return
            except CartApiError as e:
                logger.error(f"Failed to add to cart: {e}")
                self.notifier.error("Failed to add item to cart")
                return

            self._set_cart(cart)
            self.notifier.success("Item added to cart")

    async def bulk_add_to_cart(self, items: Iterable[BulkCartItem | dict]) -> None:
        entries = [
            item if isinstance(item, BulkCartItem) else BulkCartItem.model_validate(item)
            for item in items
        ]
        if not entries:
            return

        async with self._mutation_lock:
            try:
                cart_id = await self._ensure_cart_id()
                cart = await self.client.bulk_add_items(cart_id, entries)
            except StockLimitedError as e:
                self.notifier.error(stock_limited_message(e.available_quantity))
                return
            except CartApiError as e:
                logger.error(f"Failed to bulk add to cart: {e}")
                self.notifier.error("Failed to add items to cart")
                return

            self._set_cart(cart)
            self.notifier.success(f"{len(entries)} items added to cart")

    # ==================== Update Quantity ====================

    async def update_quantity(self, item_id: str, quantity: int) -> None:
        """
        Change an item's quantity.

        The new quantity is shown right away; the previous cart is restored
        if the server rejects the change.
        """
        if quantity < 1:
            self.notifier.error("Quantity must be at least 1")
            return

        async with self._mutation_lock:
            previous = self._cart
            if previous is None:
                logger.warning("update_quantity called without a cart")
                return

            item = previous.find_item(item_id)
            if item is None:
                self.notifier.error("Item not found in cart")
                return

            self._set_cart(self._with_quantity(previous, item.id, quantity))
            try:
                cart = await self.client.update_item(previous.id, item.id, quantity)
            except StockLimitedError as e:
                self._set_cart(previous)
                self.notifier.error(stock_limited_message(e.available_quantity))
                return
            except CartApiError as e:
                logger.error(f"Failed to update quantity: {e}")
                self._set_cart(previous)
                self.notifier.error("Failed to update quantity")
                return

            self._set_cart(cart)

    @staticmethod
    def _with_quantity(cart: Cart, item_id: str, quantity: int) -> Cart:
        """Provisional copy of `cart` with one item's quantity replaced"""
        items = [
            item.model_copy(update={"quantity": quantity}) if item.id == item_id else item
            for item in cart.items
        ]
        return cart.model_copy(
            update={
                "items": items,
                "item_count": sum(item.quantity for item in items),
            }
        )

    # ==================== Remove / Clear ====================

    async def remove_from_cart(self, item_id: str) -> None:
        async with self._mutation_lock:
            if self._cart is None:
                logger.warning("remove_from_cart called without a cart")
                return

            try:
                cart = await self.client.remove_item(self._cart.id, str(item_id))
            except NotFoundError as e:
                logger.error(f"Failed to remove item: {e}")
                self.notifier.error("Item not found in cart")
                return
            except CartApiError as e:
                logger.error(f"Failed to remove item: {e}")
                self.notifier.error("Failed to remove item")
                return

            self._set_cart(cart)
            self.notifier.success("Item removed from cart")

    async def clear_cart(self) -> None:
        async with self._mutation_lock:
            if self._cart is None:
                return

            try:
                cart = await self.client.clear_cart(self._cart.id)
            except CartApiError as e:
                logger.error(f"Failed to clear cart: {e}")
                self.notifier.error("Failed to clear cart")
                return

            self._set_cart(cart)
            self.notifier.success("Cart cleared")

    # ==================== Merge Cart ====================

    async def merge_cart(self, guest_cart_id: str) -> Optional[Cart]:
        """
        Fold a guest cart into the signed-in user's cart.

        The merged cart replaces the local one under its new id. The persisted
        guest id is cleared only once the server confirms the merge.
        """
        async with self._mutation_lock:
            if not self.session.is_authenticated:
                logger.error("User must be authenticated to merge carts")
                self.notifier.error("Please log in to merge carts")
                return None

            try:
                merged = await self.client.merge_carts(str(guest_cart_id), self.session.username)
            except CartApiError as e:
                logger.error(f"Failed to merge cart: {e}")
                self.notifier.error("Failed to merge carts")
                return None

            self._set_cart(merged)
            self.cart_store.clear()
            self.notifier.success("Carts merged successfully")
            return merged

    async def login(self, username: str, auth_token: str) -> None:
        """
        Attach an identity and reconcile carts.

        On the guest to authenticated transition the persisted guest cart is
        merged once; otherwise the user's own cart is loaded.
        """
        was_authenticated = self.session.is_authenticated
        self.session.authenticate(username, auth_token)
        self.client.set_auth_token(auth_token)
        if was_authenticated:
            return

        guest_cart_id = self.cart_store.get_cart_id()
        if guest_cart_id:
            logger.info(f"User authenticated, merging guest cart {guest_cart_id}")
            if await self.merge_cart(guest_cart_id):
                self.notifier.success("Welcome back! Your cart has been updated.")
                return
            logger.info("Merge unavailable, loading user cart")
        else:
            logger.info("No guest cart to merge, loading user cart")

        async with self._mutation_lock:
            self._set_cart(None)
            await self.fetch_cart()

    async def logout(self) -> None:
        async with self._mutation_lock:
            self.session.clear()
            self.client.set_auth_token(None)
            self._set_cart(None)
            self.validation_result = None
            self.shipping_estimate = None

    # ==================== Coupons ====================

    async def apply_coupon(self, coupon_code: str) -> None:
        async with self._mutation_lock:
            if self._cart is None:
                return

            try:
                cart = await self.client.apply_coupon(self._cart.id, coupon_code)
            except CartApiError as e:
                logger.error(f"Failed to apply coupon: {e}")
                self.notifier.error(e.message or "Invalid coupon code")
                return

            self._set_cart(cart)
            self.notifier.success(f'Coupon "{coupon_code}" applied successfully!')

    async def remove_coupon(self) -> None:
        async with self._mutation_lock:
            if self._cart is None:
                return

            try:
                cart = await self.client.remove_coupon(self._cart.id)
            except CartApiError as e:
                logger.error(f"Failed to remove coupon: {e}")
                self.notifier.error("Failed to remove coupon")
                return

            self._set_cart(cart)
            self.notifier.success("Coupon removed")

    # ==================== Validation & Shipping ====================

    async def validate_cart(self) -> Optional[CartValidationResult]:
        if self._cart is None:
            return None

        try:
            result = await self.client.validate_cart(self._cart.id)
        except CartApiError as e:
            logger.error(f"Failed to validate cart: {e}")
            self.notifier.error("Failed to validate cart")
            return None

        self.validation_result = result
        if not result.valid:
            self.notifier.error(f"Cart has {len(result.issues)} issue(s)")
        return result

    async def estimate_shipping(self, address: ShippingAddress | dict) -> Optional[ShippingEstimate]:
        if self._cart is None:
            return None
        if not isinstance(address, ShippingAddress):
            address = ShippingAddress.model_validate(address)

        try:
            estimate = await self.client.estimate_shipping(self._cart.id, address)
        except CartApiError as e:
            logger.error(f"Failed to estimate shipping: {e}")
            self.notifier.error("Failed to estimate shipping")
            return None

        self.shipping_estimate = estimate
        return estimate

    # ==================== Share / Save for Later ====================

    async def share_cart(self) -> Optional[str]:
        """Create a share link for the current cart"""
        if self._cart is None:
            return None

        try:
            response = await self.client.share_cart(self._cart.id)
        except CartApiError as e:
            logger.error(f"Failed to share cart: {e}")
            self.notifier.error("Failed to create share link")
            return None

        share_url = f"{self.storefront_url}/cart/shared/{response.share_token}"
        self.notifier.success("Share link created")
        return share_url

    async def save_for_later(self) -> None:
        async with self._mutation_lock:
            if self._cart is None or not self.session.is_authenticated:
                self.notifier.error("Please login to save items")
                return

            try:
                await self.client.save_for_later(self._cart.id, self.session.username)
            except CartApiError as e:
                logger.error(f"Failed to save for later: {e}")
                self.notifier.error(e.message or "Failed to save items")
                return

            await self.fetch_cart()
            self.notifier.success("Cart items saved to wishlist")

    async def fetch_summary(self) -> Optional[CartSummary]:
        if self._cart is None:
            return None

        try:
            return await self.client.get_summary(self._cart.id)
        except CartApiError as e:
            logger.error(f"Failed to fetch cart summary: {e}")
            return None
