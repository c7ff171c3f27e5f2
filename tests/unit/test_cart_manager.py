"""
Unit tests for CartManager

The cart API is replaced by a ScriptedBackend that replays canned
responses, so each test controls exactly what the server says and can
observe local state while a request is in flight.
"""
import asyncio
import json

import httpx
import pytest

from storefront_cart.core.session import SessionState
from tests.payloads import cart_payload, error_payload, item_payload


def body_of(request: httpx.Request) -> dict:
    return json.loads(request.content)


class TestCartInitialization:
    """Resolving the initial cart for guests and signed-in shoppers"""

    @pytest.mark.asyncio
    async def test_new_guest_gets_empty_cart(self, scripted_manager, backend, cart_store):
        """A guest with no stored cart id gets a freshly created cart"""
        # Arrange
        backend.reply(cart_payload(123))
        assert scripted_manager.loading is True

        # Act
        await scripted_manager.initialize()

        # Assert
        assert scripted_manager.loading is False
        assert scripted_manager.cart is not None
        assert scripted_manager.items == []
        assert scripted_manager.item_count == 0
        assert backend.requests[0].method == "POST"
        assert backend.requests[0].url.path == "/api/v1/carts"
        assert cart_store.get_cart_id() == "123"

    @pytest.mark.asyncio
    async def test_loads_persisted_guest_cart(self, scripted_manager, backend, cart_store):
        """A stored cart id is used instead of creating a new cart"""
        # Arrange
        cart_store.set_cart_id("456")
        backend.reply(cart_payload(456, [item_payload(quantity=2)]))

        # Act
        await scripted_manager.initialize()

        # Assert
        assert scripted_manager.cart_id == "456"
        assert len(scripted_manager.items) == 1
        assert scripted_manager.item_count == 2
        assert backend.requests[0].method == "GET"
        assert backend.requests[0].url.path == "/api/v1/carts/456"

    @pytest.mark.asyncio
    async def test_stale_cart_id_falls_back_to_new_cart(
        self, scripted_manager, backend, cart_store, notifier
    ):
        """A 404 on the stored id is recovered from without telling the shopper"""
        # Arrange
        cart_store.set_cart_id("999")
        backend.reply(error_payload(404, "Cart not found"), status=404)
        backend.reply(cart_payload(124))

        # Act
        await scripted_manager.initialize()

        # Assert
        assert scripted_manager.cart_id == "124"
        assert cart_store.get_cart_id() == "124"
        assert notifier.errors == []
        assert [r.method for r in backend.requests] == ["GET", "POST"]

    @pytest.mark.asyncio
    async def test_network_failure_notifies_and_stops_loading(
        self, scripted_manager, backend, notifier
    ):
        # Arrange
        backend.fail(httpx.ConnectError("Network error"))

        # Act
        await scripted_manager.initialize()

        # Assert
        assert scripted_manager.loading is False
        assert scripted_manager.cart is None
        assert notifier.errors == ["Failed to load cart"]

    @pytest.mark.asyncio
    async def test_initialize_runs_once(self, scripted_manager, backend):
        # Arrange
        backend.reply(cart_payload(123))

        # Act
        await scripted_manager.initialize()
        await scripted_manager.initialize()

        # Assert
        assert len(backend.requests) == 1

    @pytest.mark.asyncio
    async def test_authenticated_session_loads_user_cart(self, scripted_manager, backend, cart_store):
        """A signed-in shopper reads their own cart and nothing is persisted"""
        # Arrange
        scripted_manager.session.authenticate("alice", "token-123")
        backend.reply(cart_payload(789, [item_payload()]))

        # Act
        await scripted_manager.initialize()

        # Assert
        assert scripted_manager.session.state == SessionState.AUTHENTICATED
        assert scripted_manager.cart_id == "789"
        request = backend.requests[0]
        assert request.url.path == "/api/v1/carts/me"
        assert request.url.params["username"] == "alice"
        assert cart_store.get_cart_id() is None

    @pytest.mark.asyncio
    async def test_authenticated_session_without_cart_creates_one(self, scripted_manager, backend, cart_store):
        # Arrange
        scripted_manager.session.authenticate("alice", "token-123")
        backend.reply(error_payload(404, "Cart not found"), status=404)
        backend.reply(cart_payload(321))

        # Act
        await scripted_manager.initialize()

        # Assert
        assert scripted_manager.cart_id == "321"
        create_request = backend.requests[1]
        assert create_request.method == "POST"
        assert create_request.url.params["username"] == "alice"
        assert cart_store.get_cart_id() is None


class TestAddToCart:
    """Adding products, including stock-limited rejections"""

    @pytest.mark.asyncio
    async def test_add_item_successfully(self, scripted_manager, backend, notifier):
        # Arrange
        backend.reply(cart_payload(123))
        backend.reply(cart_payload(123, [item_payload()]))
        await scripted_manager.initialize()

        # Act
        await scripted_manager.add_to_cart("1", 1)

        # Assert
        assert len(scripted_manager.items) == 1
        assert scripted_manager.item_count == 1
        request = backend.requests[1]
        assert request.url.path == "/api/v1/carts/123/items"
        assert body_of(request) == {"productId": "1", "quantity": 1}
        assert notifier.successes == ["Item added to cart"]

    @pytest.mark.asyncio
    async def test_insufficient_stock_shows_available_quantity(
        self, scripted_manager, backend, notifier
    ):
        """
        Stock rejection surfaces the server's available quantity

        Validates:
        - The message names the available quantity, not the raw server text
        - The local cart is left untouched
        """
        # Arrange
        backend.reply(cart_payload(123))
        backend.reply(
            error_payload(
                400,
                "Insufficient stock available",
                {"field": "quantity", "availableQuantity": 2},
            ),
            status=400,
        )
        await scripted_manager.initialize()
        items_before = scripted_manager.items

        # Act
        await scripted_manager.add_to_cart("1", 5)

        # Assert
        assert notifier.errors == ["Only 2 items available in stock"]
        assert scripted_manager.items is items_before
        assert scripted_manager.item_count == 0

    @pytest.mark.asyncio
    async def test_network_error_shows_generic_message(self, scripted_manager, backend, notifier):
        # Arrange
        backend.reply(cart_payload(123))
        backend.fail(httpx.ConnectError("Network error"))
        await scripted_manager.initialize()

        # Act
        await scripted_manager.add_to_cart("1", 1)

        # Assert
        assert notifier.errors == ["Failed to add item to cart"]
        assert scripted_manager.items == []

    @pytest.mark.asyncio
    async def test_server_error_without_stock_data_is_generic(self, scripted_manager, backend, notifier):
        # Arrange
        backend.reply(cart_payload(123))
        backend.reply(error_payload(500, "Internal error"), status=500)
        await scripted_manager.initialize()

        # Act
        await scripted_manager.add_to_cart("1", 1)

        # Assert
        assert notifier.errors == ["Failed to add item to cart"]

    @pytest.mark.asyncio
    async def test_unreadable_stock_figure_is_generic_failure(self, scripted_manager, backend, notifier):
        # Arrange
        backend.reply(cart_payload(123))
        backend.reply(
            error_payload(400, "Insufficient stock", {"availableQuantity": "n/a"}),
            status=400,
        )
        await scripted_manager.initialize()

        # Act
        await scripted_manager.add_to_cart("1", 5)

        # Assert
        assert notifier.errors == ["Failed to add item to cart"]
        assert scripted_manager.items == []

    @pytest.mark.asyncio
    async def test_decoding_failure_is_handled(self, scripted_manager, backend, notifier):
        # Arrange
        backend.reply(cart_payload(123))
        backend.fail(httpx.DecodingError("bad gzip"))
        await scripted_manager.initialize()

        # Act
        await scripted_manager.add_to_cart("1", 1)

        # Assert
        assert notifier.errors == ["Failed to add item to cart"]

    @pytest.mark.asyncio
    async def test_zero_quantity_is_rejected_locally(self, scripted_manager, backend, notifier):
        # Arrange
        backend.reply(cart_payload(123))
        await scripted_manager.initialize()

        # Act
        await scripted_manager.add_to_cart("1", 0)

        # Assert
        assert len(backend.requests) == 1
        assert notifier.errors == ["Quantity must be at least 1"]

    @pytest.mark.asyncio
    async def test_add_creates_cart_when_none_loaded(self, scripted_manager, backend, cart_store):
        """Adding after a failed initialization creates the cart first"""
        # Arrange
        backend.fail(httpx.ConnectError("Network error"))
        await scripted_manager.initialize()
        backend.reply(cart_payload(555))
        backend.reply(cart_payload(555, [item_payload()]))

        # Act
        await scripted_manager.add_to_cart("1")

        # Assert
        assert scripted_manager.cart_id == "555"
        assert cart_store.get_cart_id() == "555"
        assert backend.requests[2].url.path == "/api/v1/carts/555/items"


class TestUpdateQuantity:
    """Optimistic quantity updates and their rollback"""

    @pytest.mark.asyncio
    async def test_new_quantity_visible_before_server_answers(self, scripted_manager, backend):
        # Arrange
        backend.reply(cart_payload(123, [item_payload(quantity=1)]))
        backend.reply(cart_payload(123, [item_payload(quantity=3)]))
        await scripted_manager.initialize()

        observed = []
        backend.observers.append(
            lambda request: observed.append(
                (scripted_manager.items[0].quantity, scripted_manager.item_count)
            )
        )

        # Act
        await scripted_manager.update_quantity("1", 3)

        # Assert
        assert observed == [(3, 3)]
        assert scripted_manager.items[0].quantity == 3
        request = backend.requests[1]
        assert request.method == "PUT"
        assert request.url.path == "/api/v1/carts/123/items/1"
        assert body_of(request) == {"quantity": 3}

    @pytest.mark.asyncio
    async def test_rollback_on_failure(self, scripted_manager, backend, notifier):
        """
        A rejected update restores the exact previous state

        Validates:
        - The optimistic quantity was shown while the call was pending
        - The previous quantity and item list object come back
        - A generic error notification is raised
        """
        # Arrange
        backend.reply(cart_payload(123, [item_payload(quantity=1)]))
        backend.reply(error_payload(500, "Update failed"), status=500)
        await scripted_manager.initialize()
        items_before = scripted_manager.items

        observed = []
        backend.observers.append(
            lambda request: observed.append(scripted_manager.items[0].quantity)
        )

        # Act
        await scripted_manager.update_quantity("1", 3)

        # Assert
        assert observed == [3]
        assert scripted_manager.items is items_before
        assert scripted_manager.items[0].quantity == 1
        assert scripted_manager.item_count == 1
        assert notifier.errors == ["Failed to update quantity"]

    @pytest.mark.asyncio
    async def test_rollback_on_stock_limit(self, scripted_manager, backend, notifier):
        # Arrange
        backend.reply(cart_payload(123, [item_payload(quantity=1)]))
        backend.reply(
            error_payload(400, "Insufficient stock", {"availableQuantity": 2}),
            status=400,
        )
        await scripted_manager.initialize()

        # Act
        await scripted_manager.update_quantity("1", 3)

        # Assert
        assert scripted_manager.items[0].quantity == 1
        assert notifier.errors == ["Only 2 items available in stock"]

    @pytest.mark.asyncio
    async def test_stale_stock_snapshot_does_not_block_update(self, scripted_manager, backend, notifier):
        """The product's stock figure may be outdated; the server decides"""
        # Arrange
        backend.reply(cart_payload(123, [item_payload(quantity=1, stock_quantity=2)]))
        backend.reply(cart_payload(123, [item_payload(quantity=5, stock_quantity=10)]))
        await scripted_manager.initialize()

        # Act
        await scripted_manager.update_quantity("1", 5)

        # Assert
        assert len(backend.requests) == 2
        assert body_of(backend.requests[1]) == {"quantity": 5}
        assert scripted_manager.items[0].quantity == 5
        assert notifier.errors == []

    @pytest.mark.asyncio
    async def test_unknown_item(self, scripted_manager, backend, notifier):
        # Arrange
        backend.reply(cart_payload(123, [item_payload()]))
        await scripted_manager.initialize()

        # Act
        await scripted_manager.update_quantity("42", 2)

        # Assert
        assert len(backend.requests) == 1
        assert notifier.errors == ["Item not found in cart"]


class TestRemoveFromCart:

    @pytest.mark.asyncio
    async def test_remove_item_successfully(self, scripted_manager, backend, notifier):
        # Arrange
        backend.reply(cart_payload(123, [item_payload()]))
        backend.reply(cart_payload(123))
        await scripted_manager.initialize()

        # Act
        await scripted_manager.remove_from_cart("1")

        # Assert
        assert scripted_manager.items == []
        assert scripted_manager.item_count == 0
        assert backend.requests[1].method == "DELETE"
        assert backend.requests[1].url.path == "/api/v1/carts/123/items/1"
        assert notifier.successes == ["Item removed from cart"]

    @pytest.mark.asyncio
    async def test_item_count_drops_by_removed_quantity(self, scripted_manager, backend):
        # Arrange
        first = item_payload(item_id=1, product_id=1, quantity=2)
        second = item_payload(item_id=2, product_id=2, quantity=3)
        backend.reply(cart_payload(123, [first, second]))
        backend.reply(cart_payload(123, [second]))
        await scripted_manager.initialize()
        assert scripted_manager.item_count == 5

        # Act
        await scripted_manager.remove_from_cart("1")

        # Assert
        assert scripted_manager.item_count == 3
        assert [item.id for item in scripted_manager.items] == ["2"]

    @pytest.mark.asyncio
    async def test_failed_remove_keeps_cart(self, scripted_manager, backend, notifier):
        # Arrange
        backend.reply(cart_payload(123, [item_payload()]))
        backend.reply(error_payload(500, "boom"), status=500)
        await scripted_manager.initialize()
        items_before = scripted_manager.items

        # Act
        await scripted_manager.remove_from_cart("1")

        # Assert
        assert scripted_manager.items is items_before
        assert notifier.errors == ["Failed to remove item"]


class TestMergeCart:
    """Folding the guest cart into the user's cart"""

    @pytest.mark.asyncio
    async def test_merge_adopts_new_cart_and_clears_guest_id(
        self, scripted_manager, backend, cart_store, notifier
    ):
        # Arrange
        cart_store.set_cart_id("456")
        backend.reply(cart_payload(456, [item_payload()]))
        backend.reply(
            cart_payload(789, [item_payload(item_id=1), item_payload(item_id=2, product_id=2)])
        )
        await scripted_manager.initialize()
        scripted_manager.session.authenticate("alice", "token-123")

        # Act
        merged = await scripted_manager.merge_cart("456")

        # Assert
        assert merged is not None
        assert scripted_manager.cart_id == "789"
        assert len(scripted_manager.items) == 2
        assert cart_store.get_cart_id() is None
        request = backend.requests[1]
        assert request.url.path == "/api/v1/carts/merge"
        assert request.url.params["username"] == "alice"
        assert body_of(request) == {"guestCartId": "456"}
        assert notifier.successes == ["Carts merged successfully"]

    @pytest.mark.asyncio
    async def test_failed_merge_keeps_guest_cart(self, scripted_manager, backend, cart_store, notifier):
        # Arrange
        cart_store.set_cart_id("456")
        backend.reply(cart_payload(456, [item_payload()]))
        backend.reply(error_payload(500, "Merge failed"), status=500)
        await scripted_manager.initialize()
        scripted_manager.session.authenticate("alice", "token-123")

        # Act
        merged = await scripted_manager.merge_cart("456")

        # Assert
        assert merged is None
        assert scripted_manager.cart_id == "456"
        assert cart_store.get_cart_id() == "456"
        assert notifier.errors == ["Failed to merge carts"]

    @pytest.mark.asyncio
    async def test_merge_requires_authentication(self, scripted_manager, backend, notifier):
        # Act
        merged = await scripted_manager.merge_cart("456")

        # Assert
        assert merged is None
        assert backend.requests == []
        assert notifier.errors == ["Please log in to merge carts"]

    @pytest.mark.asyncio
    async def test_login_merges_guest_cart_once(self, scripted_manager, backend, cart_store, notifier):
        """
        Signing in merges the stored guest cart exactly once

        Validates:
        - The merge request carries the bearer token
        - A second login for the same session does not merge again
        """
        # Arrange
        cart_store.set_cart_id("456")
        backend.reply(cart_payload(456, [item_payload()]))
        backend.reply(cart_payload(789, [item_payload()]))
        await scripted_manager.initialize()

        # Act
        await scripted_manager.login("alice", "token-123")
        await scripted_manager.login("alice", "token-123")

        # Assert
        assert len(backend.requests) == 2
        assert backend.requests[1].headers["Authorization"] == "Bearer token-123"
        assert scripted_manager.cart_id == "789"
        assert "Welcome back! Your cart has been updated." in notifier.successes

    @pytest.mark.asyncio
    async def test_login_without_guest_cart_loads_user_cart(self, scripted_manager, backend, cart_store):
        # Arrange
        backend.reply(cart_payload(900, [item_payload()]))

        # Act
        await scripted_manager.login("alice", "token-123")

        # Assert
        assert scripted_manager.cart_id == "900"
        assert backend.requests[0].url.path == "/api/v1/carts/me"
        assert cart_store.get_cart_id() is None

    @pytest.mark.asyncio
    async def test_logout_drops_identity_and_cart(self, scripted_manager, backend):
        # Arrange
        backend.reply(cart_payload(900))
        await scripted_manager.login("alice", "token-123")

        # Act
        await scripted_manager.logout()

        # Assert
        assert scripted_manager.session.state == SessionState.GUEST
        assert scripted_manager.client.auth_token is None
        assert scripted_manager.cart is None
        assert scripted_manager.items == []


class TestMutationOrdering:
    """Overlapping mutations are sent one at a time, in issue order"""

    @pytest.mark.asyncio
    async def test_second_update_waits_for_first(self, scripted_manager, backend):
        """
        Two overlapping quantity changes

        Validates:
        - The second request is not sent while the first is in flight
        - Requests reach the server in the order they were issued
        - The final state comes from the last-issued call
        """
        # Arrange
        backend.reply(cart_payload(123, [item_payload(quantity=1)]))
        await scripted_manager.initialize()
        first_response = backend.hold(cart_payload(123, [item_payload(quantity=2)]))
        backend.reply(cart_payload(123, [item_payload(quantity=5)]))

        # Act
        first = asyncio.create_task(scripted_manager.update_quantity("1", 2))
        second = asyncio.create_task(scripted_manager.update_quantity("1", 5))
        await asyncio.wait_for(first_response.arrived.wait(), timeout=1)
        for _ in range(10):
            await asyncio.sleep(0)
        requests_while_held = len(backend.requests)
        quantity_while_held = scripted_manager.items[0].quantity

        first_response.release()
        await asyncio.wait_for(asyncio.gather(first, second), timeout=1)

        # Assert
        assert requests_while_held == 2
        assert quantity_while_held == 2
        assert [body_of(r) for r in backend.requests[1:]] == [{"quantity": 2}, {"quantity": 5}]
        assert scripted_manager.items[0].quantity == 5
        assert scripted_manager.item_count == 5

    @pytest.mark.asyncio
    async def test_remove_waits_for_pending_add(self, scripted_manager, backend, notifier):
        # Arrange
        backend.reply(cart_payload(123))
        await scripted_manager.initialize()
        add_response = backend.hold(cart_payload(123, [item_payload()]))
        backend.reply(cart_payload(123))

        # Act
        add = asyncio.create_task(scripted_manager.add_to_cart("1", 1))
        remove = asyncio.create_task(scripted_manager.remove_from_cart("1"))
        await asyncio.wait_for(add_response.arrived.wait(), timeout=1)
        for _ in range(10):
            await asyncio.sleep(0)
        requests_while_held = len(backend.requests)

        add_response.release()
        await asyncio.wait_for(asyncio.gather(add, remove), timeout=1)

        # Assert
        assert requests_while_held == 2
        assert [r.method for r in backend.requests[1:]] == ["POST", "DELETE"]
        assert scripted_manager.items == []
        assert notifier.successes == ["Item added to cart", "Item removed from cart"]


class TestDerivedState:
    """Exposed state stays consistent and stable"""

    @pytest.mark.asyncio
    async def test_items_reference_is_stable_between_reads(self, scripted_manager, backend):
        # Arrange
        backend.reply(cart_payload(123, [item_payload()]))
        backend.reply({"success": True, "data": {"id": 123, "itemCount": 1, "uniqueItemCount": 1}})
        await scripted_manager.initialize()
        first = scripted_manager.items

        # Act
        await scripted_manager.fetch_summary()

        # Assert
        assert scripted_manager.items is first
        assert scripted_manager.items is scripted_manager.items

    @pytest.mark.asyncio
    async def test_item_count_follows_item_quantities(self, scripted_manager, backend):
        """A server itemCount that disagrees with the lines is corrected"""
        # Arrange
        backend.reply(
            cart_payload(123, [item_payload(quantity=2), item_payload(item_id=2, quantity=4)], itemCount=1)
        )

        # Act
        await scripted_manager.initialize()

        # Assert
        assert scripted_manager.item_count == 6

    @pytest.mark.asyncio
    async def test_fetch_cart_recovers_from_deleted_cart(self, scripted_manager, backend, cart_store):
        # Arrange
        backend.reply(cart_payload(123))
        backend.reply(error_payload(404, "Cart not found"), status=404)
        backend.reply(cart_payload(124))
        await scripted_manager.initialize()

        # Act
        await scripted_manager.fetch_cart()

        # Assert
        assert scripted_manager.cart_id == "124"
        assert cart_store.get_cart_id() == "124"


class TestCompleteCartFlow:

    @pytest.mark.asyncio
    async def test_add_update_remove(self, scripted_manager, backend, notifier):
        """Empty cart, add one, raise to three, then remove it"""
        # Arrange
        backend.reply(cart_payload(123))
        backend.reply(cart_payload(123, [item_payload(quantity=1)]))
        backend.reply(cart_payload(123, [item_payload(quantity=3)]))
        backend.reply(cart_payload(123))

        # Act & Assert
        await scripted_manager.initialize()
        assert scripted_manager.items == []

        await scripted_manager.add_to_cart("1", 1)
        assert scripted_manager.item_count == 1

        await scripted_manager.update_quantity("1", 3)
        assert scripted_manager.items[0].quantity == 3
        assert scripted_manager.item_count == 3

        await scripted_manager.remove_from_cart("1")
        assert scripted_manager.items == []
        assert scripted_manager.item_count == 0

        assert notifier.errors == []
