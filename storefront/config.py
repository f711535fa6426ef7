"""
Storefront cart configuration.

All settings come from environment variables. A local `.env` file is
honoured for development; values already present in the environment win.
"""

import os

from dotenv import load_dotenv

load_dotenv(override=False)


def _get_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "")
    try:
        return float(raw) if raw else default
    except ValueError:
        return default


def _get_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "")
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


# Cart Persistence Service
STOREFRONT_API_URL = os.environ.get("STOREFRONT_API_URL", "http://localhost:5000/api").rstrip("/")
STOREFRONT_HTTP_TIMEOUT = _get_float("STOREFRONT_HTTP_TIMEOUT", 10.0)

# Upstash Redis - standard env var names per docs
UPSTASH_REDIS_REST_URL = os.environ.get("UPSTASH_REDIS_REST_URL", "")
UPSTASH_REDIS_REST_TOKEN = os.environ.get("UPSTASH_REDIS_REST_TOKEN", "")

# Guest snapshot lifetime in seconds (30 days)
GUEST_CART_TTL = _get_int("GUEST_CART_TTL", 2592000)
