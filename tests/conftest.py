"""Pytest configuration and fixtures"""
import os
from decimal import Decimal
from unittest.mock import AsyncMock, Mock

import pytest

# Set test environment variables before storefront modules read them
os.environ.setdefault("STOREFRONT_API_URL", "https://shop.test/api")
os.environ.setdefault("UPSTASH_REDIS_REST_URL", "https://redis.test")
os.environ.setdefault("UPSTASH_REDIS_REST_TOKEN", "test_token")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from storefront.cart.models import Cart, CartLine, CartOrigin, Product  # noqa: E402
from storefront.cart.state import CartStateStore  # noqa: E402
from storefront.cart.storage import LocalCartStore  # noqa: E402
from storefront.cart.sync import SyncCoordinator  # noqa: E402


class FakeRedis:
    """In-memory stand-in for the async Upstash client (get/set/delete)."""

    def __init__(self):
        self.data = {}
        self.set_calls = []
        self.deleted = []

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self.data[key] = value
        self.set_calls.append((key, value, ex))
        return True

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            self.deleted.append(key)
            if self.data.pop(key, None) is not None:
                removed += 1
        return removed


class BrokenRedis:
    """Backend that fails every call."""

    async def get(self, key):
        raise ConnectionError("redis down")

    async def set(self, key, value, ex=None):
        raise ConnectionError("redis down")

    async def delete(self, *keys):
        raise ConnectionError("redis down")


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def broken_redis():
    return BrokenRedis()


@pytest.fixture
def local_store(fake_redis):
    """Guest cart store for device-1 backed by FakeRedis"""
    return LocalCartStore("device-1", redis=fake_redis, ttl=60)


@pytest.fixture
def make_server_cart():
    """Factory: make_server_cart(("p1", "10.00", 2), ...) -> authenticated Cart"""
    def _make(*lines):
        return Cart(
            lines=[
                CartLine(product_ref=ref, unit_price=Decimal(price), quantity=qty)
                for ref, price, qty in lines
            ],
            origin=CartOrigin.AUTHENTICATED,
        )
    return _make


@pytest.fixture
def mock_remote(make_server_cart):
    """Mock Remote Cart Client; every call returns an empty server cart"""
    remote = Mock()
    empty = make_server_cart()
    remote.fetch = AsyncMock(return_value=empty)
    remote.add_item = AsyncMock(return_value=empty)
    remote.update_item = AsyncMock(return_value=empty)
    remote.remove_item = AsyncMock(return_value=empty)
    remote.clear = AsyncMock(return_value=None)
    remote.merge_items = AsyncMock(return_value=empty)
    remote.aclose = AsyncMock()
    return remote


@pytest.fixture
def mock_identity():
    """Identity provider whose session-expired path is observable"""
    identity = Mock()
    identity.expire = AsyncMock()
    identity.get_token = Mock(return_value="test-token")
    return identity


@pytest.fixture
def notifier():
    return Mock()


@pytest.fixture
def cart_store(local_store, mock_remote, mock_identity, notifier):
    return CartStateStore(local_store, mock_remote, identity=mock_identity, notifier=notifier)


@pytest.fixture
def coordinator(cart_store, local_store, mock_remote, mock_identity, notifier):
    return SyncCoordinator(cart_store, local_store, mock_remote, identity=mock_identity, notifier=notifier)


@pytest.fixture
def sample_product():
    """Sample product data"""
    return Product(product_ref="p1", name="Linen Shirt", price=Decimal("49.99"), discount_price=Decimal("39.99"))


@pytest.fixture
def other_product():
    return Product(product_ref="p2", name="Canvas Tote", price=Decimal("15.00"))
