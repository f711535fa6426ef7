"""In-process identity session with authentication-change observers."""
from typing import Awaitable, Callable, List, Optional

from storefront.logging import get_logger, sanitize_id_for_logging

logger = get_logger(__name__)

# listener(is_authenticated, user_id)
AuthListener = Callable[[bool, Optional[str]], Awaitable[None]]


class IdentitySession:
    """
    Identity provider consumed by the cart.

    Token issuance happens elsewhere; this object only holds the current
    credential and fans authentication changes out to observers. A login
    for the same user (token refresh, profile hydration) notifies again.
    """

    def __init__(self, user_id: Optional[str] = None, token: Optional[str] = None):
        self._user_id = user_id if token else None
        self._token = token if user_id else None
        self._listeners: List[AuthListener] = []

    @property
    def is_authenticated(self) -> bool:
        return bool(self._token and self._user_id)

    @property
    def user_id(self) -> Optional[str]:
        return self._user_id if self.is_authenticated else None

    def get_token(self) -> Optional[str]:
        """Bearer credential for the cart API, None when signed out."""
        return self._token

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        """Register an observer; returns the unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def login(self, user_id: str, token: str) -> None:
        if not user_id or not token:
            raise ValueError("user_id and token are required")
        self._user_id = str(user_id)
        self._token = token
        logger.info(f"User {sanitize_id_for_logging(self._user_id)} authenticated")
        await self._notify()

    async def logout(self) -> None:
        was_authenticated = self.is_authenticated
        self._user_id = None
        self._token = None
        if was_authenticated:
            logger.info("User signed out")
        await self._notify()

    async def expire(self) -> None:
        """Session-expired path: the credential was rejected by the server."""
        logger.warning(f"Session expired for user {sanitize_id_for_logging(self._user_id)}")
        await self.logout()

    async def _notify(self) -> None:
        is_authenticated = self.is_authenticated
        user_id = self.user_id
        for listener in list(self._listeners):
            await listener(is_authenticated, user_id)
