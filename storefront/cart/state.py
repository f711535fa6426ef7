"""
Cart State Store

Single source of truth for the cart shown to the UI. Guest carts are
mutated locally and persisted to the guest snapshot; authenticated carts
are mutated on the server and re-fetched in full after every call.
"""

import asyncio
from dataclasses import dataclass
from decimal import Decimal
from typing import Awaitable, Callable, List, Optional

from storefront.errors import (
    NOTICE_ADD_FAILED,
    NOTICE_CLEAR_FAILED,
    NOTICE_LOAD_FAILED,
    NOTICE_REMOVE_FAILED,
    NOTICE_UPDATE_FAILED,
    CartError,
    Unauthorized,
)
from storefront.logging import get_logger, sanitize_id_for_logging
from storefront.services.money import add, round_money

from .models import Cart, CartLine, CartOrigin, Product, collapse_lines
from .notices import LogNotifier, Notifier

logger = get_logger(__name__)

# Flat shipping; the storefront does not charge delivery
SHIPPING_FLAT = Decimal("0.00")


@dataclass(frozen=True)
class CartSnapshot:
    """What the UI reads: cart plus loading/error flags."""
    cart: Cart
    loading: bool = False
    error: Optional[str] = None

    @property
    def is_guest(self) -> bool:
        return self.cart.is_guest


@dataclass(frozen=True)
class CartSummary:
    subtotal: Decimal
    shipping: Decimal
    total: Decimal
    item_count: int

    def to_dict(self) -> dict:
        return {
            "subtotal": str(round_money(self.subtotal)),
            "shipping": str(round_money(self.shipping)),
            "total": str(round_money(self.total)),
            "item_count": self.item_count,
        }


SnapshotListener = Callable[[CartSnapshot], None]


async def _noop() -> None:
    return None


class CartStateStore:
    """
    Holds the published CartSnapshot and exposes the cart mutations.

    Mode is selected by the origin of the current cart:
    - GUEST: in-memory change, persisted through LocalCartStore.save
    - AUTHENTICATED: remote call, then full re-fetch from the server
    """

    def __init__(self, local_store, remote, identity=None, notifier: Notifier | None = None):
        self.local_store = local_store
        self.remote = remote
        self.identity = identity
        self.notifier = notifier or LogNotifier()
        self._snapshot = CartSnapshot(cart=Cart.empty(CartOrigin.GUEST), loading=True)
        self._listeners: List[SnapshotListener] = []
        self._published = False
        # Shared with SyncCoordinator: guest edits wait for an in-flight merge
        self.sync_lock = asyncio.Lock()

    # ==================== PUBLISHED STATE ====================

    @property
    def snapshot(self) -> CartSnapshot:
        return self._snapshot

    @property
    def cart(self) -> Cart:
        return self._snapshot.cart

    @property
    def loading(self) -> bool:
        return self._snapshot.loading

    @property
    def error(self) -> Optional[str]:
        return self._snapshot.error

    @property
    def is_guest(self) -> bool:
        return self._snapshot.is_guest

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register a snapshot listener; returns the unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, cart: Cart, error: Optional[str] = None) -> None:
        """Replace the current cart; clears loading."""
        self._published = True
        self._set(CartSnapshot(cart=cart, loading=False, error=error))

    def set_loading(self, loading: bool) -> None:
        self._set(CartSnapshot(cart=self.cart, loading=loading, error=self.error))

    def set_error(self, message: str) -> None:
        """Record a failure without touching the cart."""
        self._set(CartSnapshot(cart=self.cart, loading=False, error=message))

    def _set(self, snapshot: CartSnapshot) -> None:
        self._snapshot = snapshot
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                logger.warning(f"Cart listener failed: {e}", exc_info=True)

    # ==================== MUTATIONS ====================

    async def add_item(self, product: Product, quantity: int = 1) -> Cart:
        """Add quantity of product; repeated adds sum into one line."""
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise ValueError("quantity must be a positive integer")

        def append(lines: List[CartLine]) -> List[CartLine]:
            lines.append(
                CartLine(
                    product_ref=product.product_ref,
                    unit_price=product.effective_price,
                    quantity=quantity,
                    product_name=product.name,
                )
            )
            return collapse_lines(lines)

        cart = await self._guest_mutation(append, NOTICE_ADD_FAILED)
        if cart is None:
            cart = await self._remote_mutation(
                lambda: self.remote.add_item(product.product_ref, quantity),
                NOTICE_ADD_FAILED,
            )

        self.notifier.success(f"{product.name or 'Item'} added to cart!")
        return cart

    async def update_quantity(self, product_ref: str, quantity: int) -> Cart:
        """
        Set the quantity of an existing line.

        Non-positive quantities are ignored; removal is remove_item.
        """
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            logger.debug(f"Ignoring quantity {quantity!r} for {sanitize_id_for_logging(product_ref)}")
            return self.cart

        def set_quantity(lines: List[CartLine]) -> Optional[List[CartLine]]:
            line = next((item for item in lines if item.product_ref == product_ref), None)
            if line is None:
                return None
            line.quantity = quantity
            return lines

        cart = await self._guest_mutation(set_quantity, NOTICE_UPDATE_FAILED)
        if cart is not None:
            return cart
        return await self._remote_mutation(
            lambda: self.remote.update_item(product_ref, quantity),
            NOTICE_UPDATE_FAILED,
        )

    async def remove_item(self, product_ref: str) -> Cart:
        cart = await self._guest_mutation(
            lambda lines: [line for line in lines if line.product_ref != product_ref],
            NOTICE_REMOVE_FAILED,
        )
        if cart is not None:
            return cart
        return await self._remote_mutation(
            lambda: self.remote.remove_item(product_ref),
            NOTICE_REMOVE_FAILED,
        )

    async def clear(self) -> Cart:
        async with self.sync_lock:
            if self.cart.is_guest:
                try:
                    await self.local_store.clear()
                except CartError as e:
                    self._record_failure(e, NOTICE_CLEAR_FAILED)
                    raise
                cart = Cart.empty(CartOrigin.GUEST)
                self.publish(cart)
                return cart

        return await self._remote_mutation(self.remote.clear, NOTICE_CLEAR_FAILED)

    async def refresh(self) -> Cart:
        """Reload the current cart from its owner (guest snapshot or server)."""
        async with self.sync_lock:
            if self.cart.is_guest:
                cart = await self.local_store.load()
                self.publish(cart)
                return cart

        return await self._remote_mutation(_noop, NOTICE_LOAD_FAILED)

    # ==================== QUERIES ====================

    def is_in_cart(self, product_ref: str) -> bool:
        return self.cart.find(product_ref) is not None

    def get_item_quantity(self, product_ref: str) -> int:
        line = self.cart.find(product_ref)
        return line.quantity if line else 0

    def get_summary(self) -> CartSummary:
        cart = self.cart
        subtotal = cart.subtotal
        return CartSummary(
            subtotal=subtotal,
            shipping=SHIPPING_FLAT,
            total=add(subtotal, SHIPPING_FLAT),
            item_count=cart.item_count,
        )

    # ==================== INTERNALS ====================

    async def _guest_mutation(
        self,
        edit: Callable[[List[CartLine]], Optional[List[CartLine]]],
        failure_notice: str,
    ) -> Optional[Cart]:
        """
        Apply edit to a copy of the guest lines and persist the result.

        Runs under sync_lock, so it waits for an in-flight merge and then
        sees the cart that merge published. Returns None when the cart is
        not a guest cart (caller goes to the server instead); when edit
        returns None nothing is written and the current cart is returned.
        """
        async with self.sync_lock:
            await self._ensure_loaded()
            if not self.cart.is_guest:
                return None
            lines = edit(self.cart.copy_lines())
            if lines is None:
                return self.cart
            return await self._save_guest(lines, failure_notice)

    async def _ensure_loaded(self) -> None:
        """Publish the stored guest cart before the first edit so the placeholder never overwrites it."""
        if self._published:
            return
        try:
            cart = await self.local_store.load()
        except CartError as e:
            self._record_failure(e, NOTICE_LOAD_FAILED)
            raise
        self.publish(cart)

    async def _save_guest(self, lines: List[CartLine], failure_notice: str) -> Cart:
        try:
            cart = await self.local_store.save(lines)
        except CartError as e:
            self._record_failure(e, failure_notice)
            raise
        self.publish(cart)
        return cart

    async def _remote_mutation(self, call: Callable[[], Awaitable[object]], failure_notice: str) -> Cart:
        """Run call, re-fetch the server cart and publish it; publish nothing on failure."""
        user_id = getattr(self.identity, "user_id", None)
        self.set_loading(True)
        try:
            await call()
            cart = await self.remote.fetch()
        except Unauthorized as e:
            self._record_failure(e, failure_notice)
            if self.identity is not None:
                await self.identity.expire()
            raise
        except CartError as e:
            self._record_failure(e, failure_notice)
            raise

        if self.cart.origin != CartOrigin.AUTHENTICATED or getattr(self.identity, "user_id", None) != user_id:
            # Signed out or switched account while the request was in flight
            logger.info("Discarding server cart: session changed during mutation")
            self.set_loading(False)
            return self.cart

        self.publish(cart)
        return cart

    def _record_failure(self, error: CartError, failure_notice: str) -> None:
        logger.warning(f"Cart mutation failed: {error.message}")
        self.set_error(error.message)
        self.notifier.error(error.message or failure_notice)
