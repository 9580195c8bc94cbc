"""
Paper venue client for dry runs and tests.

Serves order payloads from an in-memory table instead of calling the
Coinbase Advanced Trade API.  Payloads are stored exactly as given, so
callers can register either the nested (``{"order": {...}}``) or the
flat response shape.  Order ids registered in ``failures`` raise
:class:`VenueUnavailable` to simulate an outage for a single order.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from ..errors import VenueOrderNotFound, VenueUnavailable


class PaperVenueClient:
    """Return canned venue responses without touching the network."""

    def __init__(
        self,
        orders: Optional[Dict[str, Any]] = None,
        *,
        accounts: Optional[List[Dict[str, Any]]] = None,
        failures: Iterable[str] = (),
        latency: float = 0.0,
    ) -> None:
        self.orders: Dict[str, Any] = dict(orders or {})
        self.accounts: List[Dict[str, Any]] = list(accounts or [])
        self.failures = set(failures)
        self.latency = latency
        self.calls: List[str] = []

    @classmethod
    def from_file(cls, path: str) -> "PaperVenueClient":
        """Load canned responses from a JSON object keyed by venue order id."""
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"{path} must contain a JSON object keyed by order id")
        return cls(data)

    def add_order(
        self,
        order_id: str,
        status: str,
        filled_size: str = "0",
        filled_value: str = "0",
        average_filled_price: str = "0",
        total_fees: str = "0",
        *,
        nested: bool = True,
    ) -> Dict[str, Any]:
        """Register an order in the Advanced Trade response format."""
        fields = {
            "order_id": order_id,
            "status": status,
            "filled_size": filled_size,
            "filled_value": filled_value,
            "average_filled_price": average_filled_price,
            "total_fees": total_fees,
        }
        payload = {"order": fields} if nested else fields
        self.orders[order_id] = payload
        return payload

    async def get_order(self, order_id: str) -> Any:
        self.calls.append(order_id)
        if self.latency:
            await asyncio.sleep(self.latency)
        if order_id in self.failures:
            raise VenueUnavailable(f"simulated outage for order {order_id}")
        try:
            return self.orders[order_id]
        except KeyError:
            raise VenueOrderNotFound(f"order {order_id} not found", status=404) from None

    async def list_accounts(self, limit: int = 250) -> Any:
        return {"accounts": self.accounts[:limit]}
