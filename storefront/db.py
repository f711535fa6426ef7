"""
Storage Module - Upstash Redis client

Provides a lazily created async Upstash Redis client used as the durable
backend for guest cart snapshots.
"""

from typing import Optional

from upstash_redis.asyncio import Redis as AsyncRedis

from storefront import config

_redis_client: Optional[AsyncRedis] = None


def get_redis() -> AsyncRedis:
    """
    Get async Upstash Redis client (singleton).

    Uses standard Upstash env var names:
    - UPSTASH_REDIS_REST_URL
    - UPSTASH_REDIS_REST_TOKEN
    """
    global _redis_client

    if _redis_client is None:
        if not config.UPSTASH_REDIS_REST_URL or not config.UPSTASH_REDIS_REST_TOKEN:
            raise ValueError("UPSTASH_REDIS_REST_URL and UPSTASH_REDIS_REST_TOKEN must be set")
        _redis_client = AsyncRedis(
            url=config.UPSTASH_REDIS_REST_URL,
            token=config.UPSTASH_REDIS_REST_TOKEN,
        )

    return _redis_client


class RedisKeys:
    """Redis key prefixes."""

    GUEST_CART = "guestCart:"  # guestCart:{device_id}

    @staticmethod
    def guest_cart_key(device_id: str) -> str:
        return f"{RedisKeys.GUEST_CART}{device_id}"


class TTL:
    """Time-to-live constants for Redis keys (seconds)."""

    GUEST_CART = config.GUEST_CART_TTL
