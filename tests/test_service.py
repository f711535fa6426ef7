"""
End-to-end cart flow against an in-memory cart API
"""

import json
from decimal import Decimal
from typing import Any, Dict, List

import httpx
import pytest

from storefront.auth import IdentitySession
from storefront.cart import CartOrigin, CartService, Product, SyncState

KEY = "guestCart:device-1"

CATALOG = {
    "p1": {"_id": "p1", "name": "Linen Shirt", "price": 49.99, "discountPrice": 39.99},
    "p2": {"_id": "p2", "name": "Canvas Tote", "price": 15.0, "discountPrice": None},
}


class FakeCartApi:
    """Cart Persistence Service double; merge sums into existing lines."""

    def __init__(self, items: Dict[str, int] | None = None, fail_merge: bool = False):
        self.items: Dict[str, int] = dict(items or {})
        self.fail_merge = fail_merge
        self.merge_bodies: List[Dict[str, Any]] = []

    def _cart(self) -> httpx.Response:
        return httpx.Response(200, json={
            "items": [{"product": CATALOG[ref], "quantity": qty} for ref, qty in self.items.items()],
        })

    async def handler(self, request: httpx.Request) -> httpx.Response:
        if request.headers.get("Authorization") != "Bearer tok":
            return httpx.Response(401, json={"message": "Not authorized"})

        path = request.url.path.removeprefix("/api")
        body = json.loads(request.content) if request.content else {}

        if request.method == "GET" and path == "/cart":
            return self._cart()
        if request.method == "POST" and path == "/cart/items":
            self.items[body["productId"]] = self.items.get(body["productId"], 0) + body["quantity"]
            return self._cart()
        if request.method == "PUT" and path.startswith("/cart/items/"):
            self.items[path.rsplit("/", 1)[1]] = body["quantity"]
            return self._cart()
        if request.method == "DELETE" and path.startswith("/cart/items/"):
            self.items.pop(path.rsplit("/", 1)[1], None)
            return self._cart()
        if request.method == "DELETE" and path == "/cart":
            self.items.clear()
            return httpx.Response(200, json={"message": "Cart cleared"})
        if request.method == "POST" and path == "/cart/merge":
            self.merge_bodies.append(body)
            if self.fail_merge:
                return httpx.Response(503, json={"message": "Try later"})
            for item in body["items"]:
                self.items[item["productId"]] = self.items.get(item["productId"], 0) + item["quantity"]
            return self._cart()
        return httpx.Response(404, json={"message": "Not found"})


def _service(identity, fake_redis, api: FakeCartApi) -> CartService:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(api.handler))
    return CartService(
        identity,
        device_id="device-1",
        redis=fake_redis,
        base_url="https://shop.test/api",
        http_client=http_client,
    )


@pytest.fixture
def shirt():
    return Product(product_ref="p1", name="Linen Shirt", price=Decimal("49.99"), discount_price=Decimal("39.99"))


@pytest.mark.asyncio
async def test_guest_adds_then_logs_in(fake_redis, shirt):
    """Test guest adds are merged once on login."""
    identity = IdentitySession()
    api = FakeCartApi(items={"p2": 1})

    async with _service(identity, fake_redis, api) as service:
        store = service.store
        assert store.is_guest

        await store.add_item(shirt, 1)
        await store.add_item(shirt, 2)
        assert [(line.product_ref, line.quantity) for line in store.cart.lines] == [("p1", 3)]

        await identity.login("user-1", "tok")
        # Token hydration and profile load fire the observer again
        await identity.login("user-1", "tok")

        assert api.merge_bodies == [{"items": [{"productId": "p1", "quantity": 3}]}]
        assert KEY not in fake_redis.data
        assert store.cart.origin == CartOrigin.AUTHENTICATED
        assert store.get_item_quantity("p1") == 3
        assert store.get_item_quantity("p2") == 1
        assert store.get_summary().total == Decimal("134.97")  # 3 * 39.99 + 15
        assert service.coordinator.state == SyncState.AUTHENTICATED


@pytest.mark.asyncio
async def test_signed_in_mutations_hit_server(fake_redis, shirt):
    """Test signed-in edits go to the server."""
    identity = IdentitySession(user_id="user-1", token="tok")
    api = FakeCartApi()

    async with _service(identity, fake_redis, api) as service:
        store = service.store
        await store.add_item(shirt, 2)
        await store.update_quantity("p1", 5)
        assert api.items == {"p1": 5}
        assert store.get_item_quantity("p1") == 5

        await store.update_quantity("p1", 0)
        assert api.items == {"p1": 5}

        await store.remove_item("p1")
        assert store.cart.is_empty

        await store.add_item(shirt)
        await store.clear()
        assert api.items == {}
        assert store.cart.is_empty
        assert store.cart.origin == CartOrigin.AUTHENTICATED


@pytest.mark.asyncio
async def test_failed_merge_keeps_guest_items_until_retry(fake_redis, shirt):
    """Test guest items survive a failed merge and merge on retry."""
    identity = IdentitySession()
    api = FakeCartApi(fail_merge=True)

    async with _service(identity, fake_redis, api) as service:
        await service.store.add_item(shirt, 2)
        snapshot_before = fake_redis.data[KEY]

        await identity.login("user-1", "tok")

        assert fake_redis.data[KEY] == snapshot_before
        assert service.store.cart.origin == CartOrigin.AUTHENTICATED
        assert service.store.cart.is_empty

        await identity.logout()
        assert service.store.is_guest
        assert service.store.get_item_quantity("p1") == 2

        await identity.login("user-1", "tok")
        api.fail_merge = False
        await service.retry_merge()

        assert len(api.merge_bodies) == 3
        assert KEY not in fake_redis.data
        assert service.store.get_item_quantity("p1") == 2


@pytest.mark.asyncio
async def test_expired_token_returns_to_guest(fake_redis, shirt):
    """Test a rejected token signs out to the guest cart."""
    identity = IdentitySession(user_id="user-1", token="stale")
    api = FakeCartApi()

    async with _service(identity, fake_redis, api) as service:
        assert identity.is_authenticated is False
        assert service.store.is_guest
        assert service.coordinator.state == SyncState.GUEST
