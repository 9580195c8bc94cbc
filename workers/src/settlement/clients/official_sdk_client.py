"""
official_sdk_client
====================

Thin wrapper around the official Coinbase Advanced Trade Python SDK
(``coinbase-advanced-py``).  The SDK's REST client is synchronous, so
each call runs in a worker thread to keep the event loop free.  SDK
responses are converted to plain dictionaries so they can go through
the same payload normalisation as the aiohttp client's JSON.

Set ``USE_OFFICIAL_SDK=true`` to select this client.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

from coinbase.rest import RESTClient


def _as_dict(response: Any) -> Any:
    # Newer SDK releases return typed response objects
    if hasattr(response, "to_dict"):
        return response.to_dict()
    return response


class OfficialSdkVenueClient:
    """Wrapper for the official Coinbase Advanced Trade REST client."""

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        *,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Any = None,
    ) -> None:
        if client is None:
            kwargs: Dict[str, Any] = {"api_key": api_key, "api_secret": api_secret}
            if base_url:
                # The SDK expects a bare host name
                kwargs["base_url"] = base_url.replace("https://", "").rstrip("/")
            if timeout:
                kwargs["timeout"] = int(timeout)
            client = RESTClient(**kwargs)
        self.client = client

    async def get_order(self, order_id: str) -> Any:
        response = await asyncio.to_thread(self.client.get_order, order_id)
        return _as_dict(response)

    async def list_accounts(self, limit: int = 250) -> Any:
        response = await asyncio.to_thread(self.client.get_accounts, limit=limit)
        return _as_dict(response)
