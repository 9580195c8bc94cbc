"""Venue payload schema and normalisation helpers.

The Coinbase Advanced Trade "get order" endpoint does not always answer
with the same shape: the order fields are usually nested under an
``order`` key, but some client versions and mocks hand back the fields
at the top level.  :func:`normalize_venue_order` accepts either shape
and returns one canonical :class:`VenueOrder`, so nothing past the
venue client boundary ever has to look at raw vendor payloads.

Numeric fields arrive as strings (``"0.001"``) and are converted to
``Decimal``.  Missing or empty numeric fields become zero.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional, TypedDict

from .models import OrderStatus

ZERO = Decimal("0")


class VenueOrder(TypedDict):
    """Canonical view of a venue order.

    * ``order_id`` (str or None): Venue order id when reported.
    * ``status`` (str or None): Raw vendor status, e.g. ``"FILLED"``.
    * ``filled_size`` (Decimal): Filled base-asset quantity.
    * ``filled_value`` (Decimal): Filled notional in the quote currency.
    * ``average_filled_price`` (Decimal): Vendor-reported average price.
    * ``total_fees`` (Decimal): Fee charged by the venue itself.
    """

    order_id: Optional[str]
    status: Optional[str]
    filled_size: Decimal
    filled_value: Decimal
    average_filled_price: Decimal
    total_fees: Decimal


# Vendor status -> local status.  Matching is exact and case-sensitive;
# anything not listed leaves the order pending.
VENUE_STATUS_MAP: Dict[str, OrderStatus] = {
    "FILLED": OrderStatus.COMPLETED,
    "CANCELLED": OrderStatus.CANCELLED,
    "EXPIRED": OrderStatus.CANCELLED,
    "FAILED": OrderStatus.FAILED,
}


def map_venue_status(status: Optional[str]) -> OrderStatus:
    """Translate a vendor status into the local order status."""
    if status is None:
        return OrderStatus.PENDING
    return VENUE_STATUS_MAP.get(status, OrderStatus.PENDING)


def _to_decimal(value: Any) -> Decimal:
    if value is None or value == "":
        return ZERO
    if isinstance(value, Decimal):
        return value
    try:
        # str() first so floats keep their shortest repr instead of binary noise
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"Non-numeric venue field: {value!r}") from exc


def _pick(nested: Mapping[str, Any], top: Mapping[str, Any], key: str) -> Any:
    value = nested.get(key)
    if value is None or value == "":
        value = top.get(key)
    return value


def normalize_venue_order(payload: Any) -> VenueOrder:
    """Normalise a raw venue response into a :class:`VenueOrder`.

    Parameters
    ----------
    payload : Any
        The decoded JSON response (a mapping).  Fields are looked up
        under ``payload["order"]`` first and then at the top level.

    Raises
    ------
    ValueError
        If ``payload`` is not a mapping or a numeric field cannot be
        parsed.
    """
    if not isinstance(payload, Mapping):
        raise ValueError(f"Unexpected venue payload type: {type(payload).__name__}")
    nested = payload.get("order")
    if not isinstance(nested, Mapping):
        nested = {}

    order_id = _pick(nested, payload, "order_id")
    status = _pick(nested, payload, "status")
    return {
        "order_id": str(order_id) if order_id is not None else None,
        "status": str(status) if status is not None else None,
        "filled_size": _to_decimal(_pick(nested, payload, "filled_size")),
        "filled_value": _to_decimal(_pick(nested, payload, "filled_value")),
        "average_filled_price": _to_decimal(_pick(nested, payload, "average_filled_price")),
        "total_fees": _to_decimal(_pick(nested, payload, "total_fees")),
    }


class VenueAccount(TypedDict):
    currency: str
    available: Decimal
    hold: Decimal
    total: Decimal


def _money(field: Any) -> Decimal:
    # Accounts report balances as {"value": "1.23", "currency": "BTC"}
    if isinstance(field, Mapping):
        field = field.get("value")
    return _to_decimal(field)


def nonzero_accounts(payload: Any) -> List[VenueAccount]:
    """Return venue accounts holding a non-zero available or held balance."""
    accounts = payload.get("accounts") if isinstance(payload, Mapping) else payload
    result: List[VenueAccount] = []
    for acc in accounts or []:
        available = _money(acc.get("available_balance"))
        hold = _money(acc.get("hold"))
        if available > ZERO or hold > ZERO:
            result.append(
                {
                    "currency": str(acc.get("currency", "")),
                    "available": available,
                    "hold": hold,
                    "total": available + hold,
                }
            )
    return result
