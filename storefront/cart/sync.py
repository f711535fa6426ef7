"""
Sync Coordinator - guest → account cart reconciliation.

Reacts to authentication changes and guarantees at most one merge of the
guest cart per authenticated session, even when the observer fires
several times for one login (token hydration, profile fetch, ...).

States: IDLE → GUEST → MERGING → AUTHENTICATED, back to GUEST on logout.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from storefront.errors import (
    NOTICE_LOAD_FAILED,
    NOTICE_SYNC_FAILED,
    NOTICE_SYNCING,
    CartError,
    LocalStoreUnavailable,
    MergeFailed,
    Unauthorized,
)
from storefront.logging import get_logger, sanitize_id_for_logging

from .models import Cart, CartLine, CartOrigin, collapse_lines
from .notices import LogNotifier, Notifier

logger = get_logger(__name__)


class SyncState(str, Enum):
    IDLE = "idle"
    GUEST = "guest"
    MERGING = "merging"
    AUTHENTICATED = "authenticated"


@dataclass
class SyncSession:
    """Bookkeeping for one continuous authenticated period of one user."""
    user_id: str
    merge_in_flight: bool = False
    has_merged: bool = False


class _SessionExpired(Exception):
    """Raised inside the lock, handled after it is released."""

    def __init__(self, cause: Unauthorized):
        super().__init__(cause.message)
        self.cause = cause


class SyncCoordinator:
    """
    Owns SyncSession and is its only writer.

    Reconciliation bodies run under the store's sync_lock so a later transition
    (logout, another account) sees the guest snapshot the earlier one left.
    The guard flags are set before the first await, which is what makes
    repeated observer calls for the same login no-ops.
    """

    def __init__(self, store, local_store, remote, identity=None, notifier: Notifier | None = None):
        self.store = store
        self.local_store = local_store
        self.remote = remote
        self.identity = identity
        self.notifier = notifier or LogNotifier()
        self.state = SyncState.IDLE
        self.session: Optional[SyncSession] = None
        self.last_merge_error: Optional[MergeFailed] = None
        # Same lock as the store so guest edits cannot interleave with a merge
        self._lock = store.sync_lock

    async def on_auth_change(self, is_authenticated: bool, user_id: Optional[str]) -> None:
        """Observer for identity changes; also called once on mount."""
        if not is_authenticated or not user_id:
            self.session = None
            await self._enter_guest()
            return

        session = self.session
        if session is not None and session.user_id == user_id:
            if session.merge_in_flight or session.has_merged:
                logger.debug(f"Sync already handled for user {sanitize_id_for_logging(user_id)}")
                return
        else:
            session = SyncSession(user_id=user_id)
            self.session = session

        session.merge_in_flight = True
        try:
            await self._run_locked(self._reconcile, session)
        except Unauthorized:
            logger.warning(f"Session expired during cart sync for user {sanitize_id_for_logging(user_id)}")
        finally:
            session.merge_in_flight = False

    async def retry_merge(self) -> Optional[Cart]:
        """
        Manually retry merging guest lines left behind by a failed merge.

        Returns the merged cart, or None when there is nothing to merge.
        Raises MergeFailed if the merge fails again.
        """
        session = self.session
        if session is None or session.merge_in_flight:
            return None

        session.merge_in_flight = True
        try:
            return await self._run_locked(self._retry, session)
        finally:
            session.merge_in_flight = False

    # ==================== TRANSITIONS ====================

    async def _run_locked(self, body, *args):
        try:
            async with self._lock:
                return await body(*args)
        except _SessionExpired as expired:
            # Outside the lock: expire() re-enters on_auth_change(False)
            if self.identity is not None:
                await self.identity.expire()
            raise expired.cause

    async def _enter_guest(self) -> None:
        async with self._lock:
            if self.session is not None:
                # Signed back in while waiting
                return
            try:
                cart = await self.local_store.load()
                error = None
            except LocalStoreUnavailable as e:
                logger.error(f"Guest cart unavailable: {e.message}")
                cart, error = Cart.empty(CartOrigin.GUEST), e.message
            self.state = SyncState.GUEST
            self.store.publish(cart, error=error)

    async def _reconcile(self, session: SyncSession) -> None:
        if self.session is not session:
            return

        self.state = SyncState.MERGING
        self.store.set_loading(True)

        try:
            guest_cart = await self.local_store.load()
        except LocalStoreUnavailable as e:
            logger.error(f"Guest cart unavailable during sync, fetching account cart: {e.message}")
            guest_cart = Cart.empty(CartOrigin.GUEST)

        if guest_cart.is_empty:
            cart = await self._fetch(session)
            if cart is not None:
                session.has_merged = True
                self._publish_if_current(session, cart)
            return

        self.notifier.success(NOTICE_SYNCING)
        try:
            cart = await self._merge(session, collapse_lines(guest_cart.lines))
        except MergeFailed as failure:
            # The request may have reached the server; never resend it automatically
            session.has_merged = True
            self.last_merge_error = failure
            self.notifier.error(NOTICE_SYNC_FAILED)
            if isinstance(failure.cause, Unauthorized):
                raise _SessionExpired(failure.cause)
            cart = await self._fetch(session)
            if cart is not None:
                self._publish_if_current(session, cart)
            return

        session.has_merged = True
        self.last_merge_error = None
        self._publish_if_current(session, cart)

    async def _retry(self, session: SyncSession) -> Optional[Cart]:
        if self.session is not session:
            return None
        guest_cart = await self.local_store.load()
        if guest_cart.is_empty:
            return None

        try:
            cart = await self._merge(session, collapse_lines(guest_cart.lines))
        except MergeFailed as failure:
            self.last_merge_error = failure
            if isinstance(failure.cause, Unauthorized):
                raise _SessionExpired(failure.cause)
            self.notifier.error(NOTICE_SYNC_FAILED)
            raise

        self.last_merge_error = None
        self._publish_if_current(session, cart)
        return cart

    # ==================== HELPERS ====================

    async def _merge(self, session: SyncSession, lines: List[CartLine]) -> Cart:
        """Send guest lines once; on success drop the guest snapshot."""
        try:
            cart = await self.remote.merge_items(lines)
        except CartError as e:
            logger.warning(
                f"Guest cart merge failed for user {sanitize_id_for_logging(session.user_id)}: {e.message}"
            )
            raise MergeFailed(e)

        logger.info(
            f"Merged {len(lines)} guest line(s) for user {sanitize_id_for_logging(session.user_id)}"
        )
        try:
            await self.local_store.clear()
        except LocalStoreUnavailable as e:
            logger.error(f"Merged guest cart could not be cleared: {e.message}")
        return cart

    async def _fetch(self, session: SyncSession) -> Optional[Cart]:
        """
        Plain fetch of the account cart.

        On failure an empty authenticated cart is published with the error
        so later mutations go to the server; the guest snapshot is untouched.
        """
        try:
            return await self.remote.fetch()
        except Unauthorized as e:
            raise _SessionExpired(e)
        except CartError as e:
            logger.warning(
                f"Account cart fetch failed for user {sanitize_id_for_logging(session.user_id)}: {e.message}"
            )
            if self.session is session:
                self.state = SyncState.AUTHENTICATED
                self.store.publish(Cart.empty(CartOrigin.AUTHENTICATED), error=e.message)
            self.notifier.error(NOTICE_LOAD_FAILED)
            return None

    def _publish_if_current(self, session: SyncSession, cart: Cart) -> None:
        if self.session is not session:
            logger.info("Discarding reconciled cart: session changed while in flight")
            return
        self.state = SyncState.AUTHENTICATED
        self.store.publish(cart)
