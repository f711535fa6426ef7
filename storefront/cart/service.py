"""Cart service facade: wires identity, stores and the sync coordinator."""
from typing import Optional

import httpx

from storefront.logging import get_logger

from .models import Cart
from .notices import LogNotifier, Notifier
from .remote import RemoteCartClient
from .state import CartStateStore
from .storage import LocalCartStore
from .sync import SyncCoordinator

logger = get_logger(__name__)


class CartService:
    """
    Application-lifetime cart object.

    Features:
    - Guest cart kept in durable storage keyed by device
    - One merge of the guest cart per authenticated session
    - Server-authoritative cart once signed in

    Usage:
        async with CartService(identity, device_id="dev-1") as service:
            await service.store.add_item(product)
    """

    def __init__(
        self,
        identity,
        device_id: str,
        redis=None,
        base_url: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        notifier: Optional[Notifier] = None,
    ):
        self.identity = identity
        self.notifier = notifier or LogNotifier()
        self.local_store = LocalCartStore(device_id, redis=redis)
        self.remote = RemoteCartClient(identity, base_url=base_url, http_client=http_client)
        self.store = CartStateStore(self.local_store, self.remote, identity=identity, notifier=self.notifier)
        self.coordinator = SyncCoordinator(
            self.store,
            self.local_store,
            self.remote,
            identity=identity,
            notifier=self.notifier,
        )
        self._unsubscribe = None

    async def start(self) -> "CartService":
        """Subscribe to identity changes and run the initial reconciliation."""
        if self._unsubscribe is None:
            self._unsubscribe = self.identity.subscribe(self.coordinator.on_auth_change)
        await self.coordinator.on_auth_change(self.identity.is_authenticated, self.identity.user_id)
        return self

    async def aclose(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        await self.remote.aclose()
        logger.debug("Cart service closed")

    async def retry_merge(self) -> Optional[Cart]:
        return await self.coordinator.retry_merge()

    async def __aenter__(self) -> "CartService":
        return await self.start()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
