"""
Cart Errors

Centralized error messages and the exception hierarchy raised by the
cart components. Corrupted local state is recovered in place and never
shows up here.
"""

# Remote errors
ERROR_TOKEN_MISSING = "Authentication token not found."
ERROR_UNAUTHORIZED = "Unauthorized"
ERROR_REMOTE_UNAVAILABLE = "Cart service unavailable"
ERROR_API_GENERIC = "An API error occurred"
ERROR_MALFORMED_RESPONSE = "Malformed cart response"

# Local storage
ERROR_LOCAL_STORE_UNAVAILABLE = "Local cart storage unavailable"

# User-facing notices
NOTICE_SYNCING = "Syncing your saved items..."
NOTICE_SYNC_FAILED = "Could not sync local cart. Please contact support."
NOTICE_ADD_FAILED = "Failed to add item to cart."
NOTICE_UPDATE_FAILED = "Failed to update quantity."
NOTICE_REMOVE_FAILED = "Failed to remove item."
NOTICE_CLEAR_FAILED = "Failed to clear cart."
NOTICE_LOAD_FAILED = "Failed to load your cart."


class CartError(Exception):
    """Base class for cart failures surfaced to callers."""

    default_message = "Cart error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class RemoteUnavailable(CartError):
    """Network failure, timeout or 5xx from the Cart Persistence Service."""

    default_message = ERROR_REMOTE_UNAVAILABLE


class Unauthorized(CartError):
    """Missing or expired credential; the session must be ended."""

    default_message = ERROR_UNAUTHORIZED


class CartRequestError(CartError):
    """Request rejected by the service (4xx other than auth) or unreadable reply."""

    default_message = ERROR_API_GENERIC

    def __init__(self, message: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class MergeFailed(CartError):
    """Guest lines could not be merged into the account cart."""

    default_message = NOTICE_SYNC_FAILED

    def __init__(self, cause: CartError):
        super().__init__(f"{NOTICE_SYNC_FAILED} ({cause.message})")
        self.cause = cause


class LocalStoreUnavailable(CartError):
    """The durable guest storage backend could not be reached."""

    default_message = ERROR_LOCAL_STORE_UNAVAILABLE
