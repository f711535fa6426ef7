"""Remote Cart Client - Cart Persistence Service over HTTP.

Stateless: every call fetches a fresh credential from the identity
provider and maps transport/HTTP failures onto the cart error taxonomy.
No retries here; retry policy belongs to callers.
"""

from typing import Any, Iterable
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from storefront import config
from storefront.errors import (
    ERROR_API_GENERIC,
    ERROR_MALFORMED_RESPONSE,
    ERROR_TOKEN_MISSING,
    CartRequestError,
    RemoteUnavailable,
    Unauthorized,
)
from storefront.logging import get_logger, sanitize_id_for_logging

from .models import Cart, CartLine
from .schemas import AddItemRequest, MergeItem, MergeRequest, ServerCart, UpdateItemRequest

logger = get_logger(__name__)


class RemoteCartClient:
    """Request wrapper around the cart API (GET/POST/PUT/DELETE /cart...)."""

    def __init__(self, identity, base_url: str | None = None, http_client: httpx.AsyncClient | None = None):
        """
        Args:
            identity: Object exposing get_token() -> str | None
            base_url: API root, defaults to STOREFRONT_API_URL
            http_client: Pre-built client (tests inject a MockTransport)
        """
        self.identity = identity
        self.base_url = (base_url or config.STOREFRONT_API_URL).rstrip("/")
        self._http_client = http_client

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Lazy creation of shared httpx client with timeouts."""
        if self._http_client is None:
            timeout = config.STOREFRONT_HTTP_TIMEOUT
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(timeout, connect=5.0),
                limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
            )
        return self._http_client

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def _request(self, method: str, path: str, payload: dict | None = None) -> Any:
        token = self.identity.get_token()
        if not token:
            raise Unauthorized(ERROR_TOKEN_MISSING)

        client = await self._get_http_client()
        try:
            response = await client.request(
                method,
                f"{self.base_url}{path}",
                json=payload,
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {token}",
                },
            )
        except httpx.HTTPError as e:
            logger.warning(f"Cart API {method} {path} failed: {type(e).__name__}: {e}")
            raise RemoteUnavailable(f"Cart service unavailable: {type(e).__name__}")

        if response.status_code in (401, 403):
            raise Unauthorized(_error_message(response, "Session expired"))
        if response.status_code >= 500:
            logger.warning(f"Cart API {method} {path} returned {response.status_code}")
            raise RemoteUnavailable(f"Cart service unavailable: HTTP {response.status_code}")
        if response.status_code >= 400:
            raise CartRequestError(_error_message(response, ERROR_API_GENERIC), status_code=response.status_code)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            raise CartRequestError(ERROR_MALFORMED_RESPONSE, status_code=response.status_code)

    async def _cart_request(self, method: str, path: str, payload: dict | None = None) -> Cart:
        data = await self._request(method, path, payload)
        try:
            return ServerCart.model_validate(data).to_cart()
        except (ValidationError, ValueError) as e:
            logger.warning(f"Unexpected cart payload from {method} {path}: {e}")
            raise CartRequestError(ERROR_MALFORMED_RESPONSE)

    # ==================== OPERATIONS ====================

    async def fetch(self) -> Cart:
        """GET /cart"""
        return await self._cart_request("GET", "/cart")

    async def add_item(self, product_ref: str, quantity: int) -> Cart:
        """POST /cart/items"""
        body = AddItemRequest(product_id=product_ref, quantity=quantity)
        return await self._cart_request("POST", "/cart/items", body.model_dump(by_alias=True))

    async def update_item(self, product_ref: str, quantity: int) -> Cart:
        """PUT /cart/items/{product_ref}"""
        body = UpdateItemRequest(quantity=quantity)
        return await self._cart_request("PUT", f"/cart/items/{quote(product_ref, safe='')}", body.model_dump())

    async def remove_item(self, product_ref: str) -> Cart:
        """DELETE /cart/items/{product_ref}"""
        return await self._cart_request("DELETE", f"/cart/items/{quote(product_ref, safe='')}")

    async def clear(self) -> None:
        """DELETE /cart"""
        await self._request("DELETE", "/cart")

    async def merge_items(self, lines: Iterable[CartLine]) -> Cart:
        """
        POST /cart/merge

        The server sums incoming quantities into existing lines, so callers
        must send each guest cart at most once.
        """
        body = MergeRequest(
            items=[MergeItem(product_id=line.product_ref, quantity=line.quantity) for line in lines]
        )
        logger.info(
            f"Merging {len(body.items)} guest line(s) for user "
            f"{sanitize_id_for_logging(getattr(self.identity, 'user_id', None))}"
        )
        return await self._cart_request("POST", "/cart/merge", body.model_dump(by_alias=True))


def _error_message(response: httpx.Response, default: str) -> str:
    """Server error text from a {"message": ...} body, else default."""
    try:
        data = response.json()
    except ValueError:
        return default
    if isinstance(data, dict) and isinstance(data.get("message"), str) and data["message"]:
        return data["message"]
    return default
