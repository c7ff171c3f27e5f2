"""Shared fixtures for cart client and mock store tests"""

import httpx
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from mock_store import create_app
from storefront_cart.core.notifications import Notifier
from storefront_cart.core.storage import GuestCartStore, MemoryStorage
from storefront_cart.services.api_client import CartApiClient
from storefront_cart.services.cart_manager import CartManager
from tests.payloads import API_ROOT, STOREFRONT_URL, ScriptedBackend


@pytest.fixture
def notifier() -> Notifier:
    return Notifier()


@pytest.fixture
def cart_store() -> GuestCartStore:
    return GuestCartStore(MemoryStorage())


# ==================== Scripted backend ====================

@pytest.fixture
def backend() -> ScriptedBackend:
    return ScriptedBackend()


@pytest_asyncio.fixture
async def scripted_client(backend: ScriptedBackend):
    client = CartApiClient(API_ROOT, transport=backend.transport())
    yield client
    await client.close()


@pytest.fixture
def scripted_manager(scripted_client, cart_store, notifier) -> CartManager:
    """Cart manager talking to a ScriptedBackend"""
    return CartManager(scripted_client, cart_store, notifier, storefront_url=STOREFRONT_URL)


# ==================== In-process mock store ====================

@pytest.fixture
def store_app():
    return create_app()


@pytest.fixture
def test_client(store_app):
    with TestClient(store_app) as client:
        yield client


@pytest_asyncio.fixture
async def store_client(store_app):
    client = CartApiClient(API_ROOT, transport=httpx.ASGITransport(app=store_app))
    yield client
    await client.close()


@pytest.fixture
def store_manager(store_client, cart_store, notifier) -> CartManager:
    """Cart manager talking to an in-process mock store"""
    return CartManager(store_client, cart_store, notifier, storefront_url=STOREFRONT_URL)
