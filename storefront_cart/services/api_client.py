"""
Cart API Client

HTTP client for the storefront cart API.
Unwraps `{success, data}` envelopes and maps error envelopes to exceptions.
"""

import json
import logging
from typing import Optional, Any, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from ..core.config import Settings
from ..models.cart import (
    Cart,
    CartSummary,
    BulkCartItem,
    CartValidationResult,
    ShippingAddress,
    ShippingEstimate,
    ShareCartResponse,
    SaveForLaterResult,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class CartApiError(Exception):
    """Base exception for cart API errors"""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        data: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status = status
        self.data = data or {}


class StockLimitedError(CartApiError):
    """Requested quantity exceeds what the backend has in stock"""

    def __init__(self, message: str, available_quantity: int, data: Optional[dict] = None):
        super().__init__(message, status=400, data=data)
        self.available_quantity = available_quantity


class NotFoundError(CartApiError):
    """Addressed cart, item or product does not exist"""
    pass


class NetworkError(CartApiError):
    """The request did not complete, so there is no usable response"""
    pass


class CartApiClient:
    """
    Client for the cart REST API.

    Usage:
        client = CartApiClient.from_settings(settings)
        cart = await client.create_cart()
        cart = await client.add_item(cart.id, product_id="1", quantity=2)
    """

    def __init__(
        self,
        base_url: str,
        auth_token: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize cart API client.

        Args:
            base_url: API root, e.g. http://localhost:9190/api
            auth_token: Bearer token of the signed-in shopper
            timeout: Per-request timeout in seconds
            transport: Alternative httpx transport (tests, in-process apps)
        """
        self.base_url = base_url.rstrip("/")
        self.auth_token = auth_token
        self._http_client = httpx.AsyncClient(timeout=timeout, transport=transport)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "CartApiClient":
        """Create client from application settings"""
        return cls(
            base_url=settings.api_root,
            timeout=settings.request_timeout,
            transport=transport,
        )

    async def close(self) -> None:
        """Close HTTP client"""
        await self._http_client.aclose()

    def set_auth_token(self, auth_token: Optional[str]) -> None:
        self.auth_token = auth_token

    def _generate_headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        body: Optional[dict] = None,
        params: Optional[dict[str, str]] = None,
    ) -> Any:
        """Make an HTTP request and return the unwrapped payload"""
        url = f"{self.base_url}{path}"
        body_str = json.dumps(body) if body is not None else None

        try:
            response = await self._http_client.request(
                method=method,
                url=url,
                headers=self._generate_headers(),
                content=body_str,
                params=params,
            )
        except httpx.RequestError as e:
            logger.error(f"Request failed: {method} {url} - {e}")
            raise NetworkError(f"Network error: {e}") from e

        if response.status_code >= 400:
            logger.error(f"Request failed: {response.status_code} - {response.text}")
            raise self._error_from_response(response)

        try:
            payload = response.json()
        except ValueError as e:
            raise CartApiError(
                f"Invalid JSON from {method} {path}", status=response.status_code
            ) from e

        # Wrapped responses: {"success": true, "data": {...}}
        if isinstance(payload, dict) and "success" in payload and "data" in payload:
            return payload["data"]
        return payload

    @staticmethod
    def _error_from_response(response: httpx.Response) -> CartApiError:
        """Translate an error envelope into the matching exception"""
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        status = response.status_code
        message = body.get("message") or body.get("error") or f"HTTP {status}"
        data = body.get("data") if isinstance(body.get("data"), dict) else {}

        available = CartApiClient._available_quantity(data)
        if status == 400 and available is not None:
            return StockLimitedError(message, available_quantity=available, data=data)
        if status == 404:
            return NotFoundError(message, status=status, data=data)
        return CartApiError(message, status=status, data=data)

    @staticmethod
    def _available_quantity(data: dict[str, Any]) -> Optional[int]:
        """Stock figure from an error envelope; None unless it is a whole number"""
        value = data.get("availableQuantity")
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        if isinstance(value, str) and value.strip().isdigit():
            return int(value)
        if value is not None:
            logger.warning(f"Ignoring non-numeric availableQuantity: {value!r}")
        return None

    @staticmethod
    def _parse(model: Type[ModelT], payload: Any) -> ModelT:
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            logger.error(f"Malformed {model.__name__} payload: {e}")
            raise CartApiError(f"Malformed {model.__name__} response") from e

    @staticmethod
    def _username_params(username: Optional[str]) -> Optional[dict[str, str]]:
        return {"username": username} if username else None

    # ==================== Cart APIs ====================

    async def create_cart(self, username: Optional[str] = None) -> Cart:
        """Create a new cart, owned by `username` when given"""
        payload = await self._request(
            "POST", "/v1/carts", params=self._username_params(username)
        )
        return self._parse(Cart, payload)

    async def get_cart(self, cart_id: str) -> Cart:
        """Get cart by ID"""
        return self._parse(Cart, await self._request("GET", f"/v1/carts/{cart_id}"))

    async def get_my_cart(self, username: str) -> Cart:
        """Get the cart associated with a user account"""
        payload = await self._request(
            "GET", "/v1/carts/me", params={"username": username}
        )
        return self._parse(Cart, payload)

    async def add_item(self, cart_id: str, product_id: str, quantity: int = 1) -> Cart:
        """Add item to cart"""
        payload = await self._request(
            "POST",
            f"/v1/carts/{cart_id}/items",
            body={"productId": product_id, "quantity": quantity},
        )
        return self._parse(Cart, payload)

    async def bulk_add_items(self, cart_id: str, items: list[BulkCartItem]) -> Cart:
        """Add several items in one request"""
        payload = await self._request(
            "POST",
            f"/v1/carts/{cart_id}/items/bulk",
            body={"items": [item.model_dump(by_alias=True) for item in items]},
        )
        return self._parse(Cart, payload)

    async def update_item(self, cart_id: str, item_id: str, quantity: int) -> Cart:
        """Update item quantity in cart"""
        payload = await self._request(
            "PUT",
            f"/v1/carts/{cart_id}/items/{item_id}",
            body={"quantity": quantity},
        )
        return self._parse(Cart, payload)

    async def remove_item(self, cart_id: str, item_id: str) -> Cart:
        """Remove item from cart"""
        payload = await self._request("DELETE", f"/v1/carts/{cart_id}/items/{item_id}")
        return self._parse(Cart, payload)

    async def clear_cart(self, cart_id: str) -> Cart:
        """Remove every item from cart"""
        payload = await self._request("DELETE", f"/v1/carts/{cart_id}/items")
        return self._parse(Cart, payload)

    async def merge_carts(self, guest_cart_id: str, username: str) -> Cart:
        """Merge a guest cart into the user's cart; the result has a new id"""
        payload = await self._request(
            "POST",
            "/v1/carts/merge",
            body={"guestCartId": guest_cart_id},
            params={"username": username},
        )
        return self._parse(Cart, payload)

    # ==================== Coupon APIs ====================

    async def apply_coupon(self, cart_id: str, coupon_code: str) -> Cart:
        payload = await self._request(
            "POST",
            f"/v1/carts/{cart_id}/coupons",
            body={"couponCode": coupon_code},
        )
        return self._parse(Cart, payload)

    async def remove_coupon(self, cart_id: str) -> Cart:
        payload = await self._request("DELETE", f"/v1/carts/{cart_id}/coupons")
        return self._parse(Cart, payload)

    # ==================== Cart Insight APIs ====================

    async def validate_cart(self, cart_id: str) -> CartValidationResult:
        """Re-check cart items against current stock and prices"""
        payload = await self._request("POST", f"/v1/carts/{cart_id}/validate")
        return self._parse(CartValidationResult, payload)

    async def get_summary(self, cart_id: str) -> CartSummary:
        payload = await self._request("GET", f"/v1/carts/{cart_id}/summary")
        return self._parse(CartSummary, payload)

    async def estimate_shipping(
        self, cart_id: str, address: ShippingAddress
    ) -> ShippingEstimate:
        payload = await self._request(
            "POST",
            f"/v1/carts/{cart_id}/estimate-shipping",
            body=address.model_dump(by_alias=True, exclude_none=True),
        )
        return self._parse(ShippingEstimate, payload)

    async def share_cart(self, cart_id: str) -> ShareCartResponse:
        payload = await self._request("POST", f"/v1/carts/{cart_id}/share")
        return self._parse(ShareCartResponse, payload)

    async def save_for_later(self, cart_id: str, username: str) -> SaveForLaterResult:
        """Move cart items to the user's wishlist"""
        payload = await self._request(
            "POST",
            f"/v1/carts/{cart_id}/save-for-later",
            params={"username": username},
        )
        return self._parse(SaveForLaterResult, payload)
