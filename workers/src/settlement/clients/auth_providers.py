"""
Authentication provider abstractions for the Coinbase Advanced Trade API.

These classes encapsulate how request headers are built, so the HTTP
client does not need to know which credential type is in use.
"""
from __future__ import annotations

import hashlib
import hmac
import time
from typing import Callable, Dict


class AuthProvider:
    """Abstract base class for authentication providers."""

    async def get_headers(self, method: str, path: str, body: str) -> Dict[str, str]:
        """Return headers for the given request.

        ``path`` is the request path without the query string.
        Subclasses must implement this method.
        """
        raise NotImplementedError


class ApiKeyProvider(AuthProvider):
    """HMAC-SHA256 signing with an Advanced Trade API key and secret.

    The signature is the hex digest of
    ``timestamp + METHOD + request_path + body`` keyed by the secret.
    """

    def __init__(self, api_key: str, api_secret: str, *, clock: Callable[[], float] = time.time) -> None:
        self.api_key = api_key
        self.api_secret = api_secret
        self._clock = clock

    def sign(self, timestamp: str, method: str, path: str, body: str) -> str:
        message = f"{timestamp}{method.upper()}{path}{body}".encode()
        return hmac.new(self.api_secret.encode(), message, hashlib.sha256).hexdigest()

    async def get_headers(self, method: str, path: str, body: str) -> Dict[str, str]:
        timestamp = str(int(self._clock()))
        return {
            "CB-ACCESS-KEY": self.api_key,
            "CB-ACCESS-SIGN": self.sign(timestamp, method, path, body),
            "CB-ACCESS-TIMESTAMP": timestamp,
            "Content-Type": "application/json",
        }
