"""Authentication package."""
from .session import AuthListener, IdentitySession

__all__ = [
    "AuthListener",
    "IdentitySession",
]
