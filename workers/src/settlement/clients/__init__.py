"""
Client utilities for interacting with the trading venue.

Three interchangeable clients expose ``get_order`` and
``list_accounts``: the aiohttp REST client, the official SDK wrapper
and the in-memory paper client.  :func:`build_venue_client` picks one
from the worker settings.
"""

from __future__ import annotations

from typing import Union

from ..config import Settings
from .http_venue import CoinbaseVenueClient
from .official_sdk_client import OfficialSdkVenueClient
from .paper_venue import PaperVenueClient

VenueClientType = Union[CoinbaseVenueClient, OfficialSdkVenueClient, PaperVenueClient]


def build_venue_client(settings: Settings) -> VenueClientType:
    """Return the venue client selected by ``settings``."""
    if settings.paper_trading:
        if settings.paper_orders_path:
            return PaperVenueClient.from_file(settings.paper_orders_path)
        return PaperVenueClient()
    if settings.use_official_sdk:
        return OfficialSdkVenueClient(
            settings.coinbase_api_key,
            settings.coinbase_api_secret,
            base_url=settings.coinbase_base_url,
            timeout=settings.venue_timeout_seconds,
        )
    return CoinbaseVenueClient(
        settings.coinbase_api_key,
        settings.coinbase_api_secret,
        base_url=settings.coinbase_base_url,
        max_requests_per_minute=settings.max_requests_per_minute,
        timeout=settings.venue_timeout_seconds,
    )


__all__ = [
    "CoinbaseVenueClient",
    "OfficialSdkVenueClient",
    "PaperVenueClient",
    "build_venue_client",
]
