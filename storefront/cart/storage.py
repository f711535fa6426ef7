"""Guest cart snapshot storage on top of Redis."""
import json
from decimal import InvalidOperation
from typing import Iterable, Optional

from storefront.db import RedisKeys, TTL, get_redis
from storefront.errors import LocalStoreUnavailable
from storefront.logging import get_logger, sanitize_id_for_logging

from .models import Cart, CartLine, CartOrigin

logger = get_logger(__name__)


class LocalCartStore:
    """
    Durable guest cart for one browsing device.

    The backend is any async key-value client exposing get/set/delete
    (the Upstash Redis client by default).
    """

    def __init__(self, device_id: str, redis=None, ttl: Optional[int] = None):
        if not device_id:
            raise ValueError("device_id must be a non-empty string")
        self.device_id = device_id
        self.key = RedisKeys.guest_cart_key(device_id)
        self.ttl = TTL.GUEST_CART if ttl is None else ttl
        self._redis = redis  # Lazy initialization

    @property
    def redis(self):
        """Get Redis client (lazy initialization)."""
        if self._redis is None:
            try:
                self._redis = get_redis()
            except ValueError as e:
                raise LocalStoreUnavailable(f"Redis not available: {e}")
        return self._redis

    async def load(self) -> Cart:
        """
        Read the guest snapshot.

        Missing key is an empty cart. Corrupted data is deleted and an empty
        cart returned; it must never block browsing or checkout.
        """
        try:
            data = await self.redis.get(self.key)
        except LocalStoreUnavailable:
            raise
        except Exception as e:
            logger.error(f"Failed to read guest cart: {e}")
            raise LocalStoreUnavailable(f"Failed to read guest cart: {e}")

        if not data:
            return Cart.empty(CartOrigin.GUEST)

        try:
            payload = json.loads(data)
            if not isinstance(payload, dict) or not isinstance(payload.get("lines"), list):
                raise TypeError("snapshot must be an object with a 'lines' list")
            lines = [CartLine.from_dict(item) for item in payload["lines"]]
        except (json.JSONDecodeError, KeyError, TypeError, ValueError, AttributeError, InvalidOperation) as e:
            logger.warning(
                f"Corrupted guest cart for device {sanitize_id_for_logging(self.device_id)}: {e}"
            )
            await self._discard()
            return Cart.empty(CartOrigin.GUEST)

        return Cart(lines=lines, origin=CartOrigin.GUEST)

    async def save(self, lines: Iterable[CartLine]) -> Cart:
        """Write the full snapshot (lines plus recomputed totals) in one call."""
        cart = Cart(lines=list(lines), origin=CartOrigin.GUEST)
        try:
            await self.redis.set(self.key, json.dumps(cart.to_dict()), ex=self.ttl)
        except LocalStoreUnavailable:
            raise
        except Exception as e:
            logger.error(f"Failed to save guest cart: {e}")
            raise LocalStoreUnavailable(f"Failed to save guest cart: {e}")
        return cart

    async def clear(self) -> None:
        """Remove the snapshot entirely."""
        try:
            await self.redis.delete(self.key)
        except LocalStoreUnavailable:
            raise
        except Exception as e:
            logger.error(f"Failed to clear guest cart: {e}")
            raise LocalStoreUnavailable(f"Failed to clear guest cart: {e}")

    async def _discard(self) -> None:
        try:
            await self.redis.delete(self.key)
        except Exception as e:
            logger.warning(f"Failed to discard corrupted guest cart: {e}")
