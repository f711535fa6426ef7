"""Cart package: models, storage, remote client, sync coordinator and state store."""
from .models import Cart, CartLine, CartOrigin, Product, collapse_lines
from .totals import CartTotals, calculate_totals
from .storage import LocalCartStore
from .remote import RemoteCartClient
from .state import CartSnapshot, CartStateStore, CartSummary
from .sync import SyncCoordinator, SyncSession, SyncState
from .service import CartService

__all__ = [
    "Cart",
    "CartLine",
    "CartOrigin",
    "Product",
    "collapse_lines",
    "CartTotals",
    "calculate_totals",
    "LocalCartStore",
    "RemoteCartClient",
    "CartSnapshot",
    "CartStateStore",
    "CartSummary",
    "SyncCoordinator",
    "SyncSession",
    "SyncState",
    "CartService",
]
