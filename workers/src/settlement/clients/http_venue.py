"""
Coinbase Advanced Trade REST client with signing, rate limiting and retries.

Only the read endpoints the settlement worker needs are wrapped:
``get_order`` (historical order lookup by venue order id) and
``list_accounts``.  Requests are signed by an :class:`AuthProvider`,
throttled by a per-minute token bucket and retried with exponential
backoff when the failure is transient (connection errors, timeouts and
5xx responses).  Client errors (4xx) are not retried.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any, Dict, Optional
from urllib.parse import quote

import aiohttp
from aiohttp import ClientResponse
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..errors import VenueError, VenueOrderNotFound, VenueUnavailable
from .auth_providers import ApiKeyProvider, AuthProvider

logger = logging.getLogger(__name__)

ORDERS_PATH = "/api/v3/brokerage/orders/historical"
ACCOUNTS_PATH = "/api/v3/brokerage/accounts"


class CoinbaseVenueClient:
    """Asynchronous Coinbase Advanced Trade client with simple rate limiting."""

    def __init__(
        self,
        api_key: str = "",
        api_secret: str = "",
        *,
        auth_provider: Optional[AuthProvider] = None,
        base_url: str = "https://api.coinbase.com",
        max_requests_per_minute: int = 120,
        timeout: float = 30.0,
    ) -> None:
        """Construct the HTTP client.

        Args:
            api_key: Advanced Trade API key.  Ignored when ``auth_provider``
                is supplied.
            api_secret: Advanced Trade API secret.  Ignored when
                ``auth_provider`` is supplied.
            auth_provider: Optional authentication provider; defaults to
                HMAC signing with ``api_key``/``api_secret``.
            base_url: REST base URL.
            max_requests_per_minute: Maximum number of REST requests per minute.
            timeout: Total per-request timeout in seconds.
        """
        self.auth_provider: AuthProvider = auth_provider or ApiKeyProvider(api_key, api_secret)
        self.base_url = base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        # Token bucket: one token per request, refilled evenly over the minute.
        self.max_requests_per_minute = max_requests_per_minute
        self.tokens = max_requests_per_minute
        self._token_lock = asyncio.Lock()
        self._last_refill = time.monotonic()
        self._token_interval = (
            60.0 / max_requests_per_minute if max_requests_per_minute > 0 else 60.0
        )

    async def _acquire_token(self) -> None:
        """Wait until a request token is available based on the token bucket."""
        while True:
            async with self._token_lock:
                now = time.monotonic()
                elapsed = now - self._last_refill
                if elapsed > 0 and self.max_requests_per_minute > 0:
                    new_tokens = int(elapsed / self._token_interval)
                    if new_tokens > 0:
                        self.tokens = min(self.max_requests_per_minute, self.tokens + new_tokens)
                        self._last_refill = now
                if self.tokens > 0:
                    self.tokens -= 1
                    return
            await asyncio.sleep(self._token_interval)

    async def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        await self._acquire_token()
        url = f"{self.base_url}{path}"
        body = json.dumps(payload) if payload else ""
        # Signatures cover the path only, never the query string
        headers = await self.auth_provider.get_headers(method, path.split("?", 1)[0], body)
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.request(method, url, headers=headers, data=body or None) as resp:
                    await self._handle_response_errors(resp)
                    return await resp.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise VenueUnavailable(f"{method} {path} failed: {exc}") from exc

    @staticmethod
    async def _handle_response_errors(resp: ClientResponse) -> None:
        if resp.status < 400:
            return
        # Truncate bodies to avoid leaking account data into logs
        text = await resp.text()
        truncated = text[:200] if text else ""
        logger.error("REST API error %s: %s", resp.status, truncated)
        if resp.status == 404:
            raise VenueOrderNotFound(f"REST API error {resp.status}", status=resp.status)
        if resp.status >= 500 or resp.status == 429:
            raise VenueUnavailable(f"REST API error {resp.status}", status=resp.status)
        raise VenueError(f"REST API error {resp.status}", status=resp.status)

    @retry(
        retry=retry_if_exception_type(VenueUnavailable),
        stop=stop_after_attempt(3),
        wait=wait_exponential(min=1, max=8),
        reraise=True,
    )
    async def get(self, path: str) -> Any:
        return await self._request("GET", path)

    async def get_order(self, order_id: str) -> Any:
        """Fetch one order by venue order id."""
        return await self.get(f"{ORDERS_PATH}/{quote(order_id, safe='')}")

    async def list_accounts(self, limit: int = 250) -> Any:
        return await self.get(f"{ACCOUNTS_PATH}?limit={limit}")
