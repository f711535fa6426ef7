"""
Storefront Cart Module

This package contains the cart reconciliation components:
- config: Environment-driven settings
- db: Upstash Redis client for the guest cart snapshot
- cart: Models, totals, local/remote stores, sync coordinator, state store
- auth: In-process identity session
- services: Money helpers

Note: Imports are lazy to keep module loading cheap for consumers
that only need a single component.
"""

__all__ = [
    "CartService",
    "IdentitySession",
]


def __getattr__(name):
    """Lazy attribute access."""
    if name == "CartService":
        from storefront.cart.service import CartService
        return CartService
    if name == "IdentitySession":
        from storefront.auth.session import IdentitySession
        return IdentitySession
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
