"""
Domain models for orders and ledger balances using Pydantic.

Quantities and prices are ``Decimal`` throughout; nothing that feeds
the ledger is ever converted to ``float``.
"""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

ZERO = Decimal("0")


class OrderSide(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self is not OrderStatus.PENDING


class Order(BaseModel):
    """Local record of a trade routed to the venue."""

    id: str
    user_id: str
    external_order_id: Optional[str] = None
    asset: str = Field(..., description="Base asset code, e.g. BTC")
    quote: str = Field(..., description="Quote asset code, e.g. USD")
    side: OrderSide
    amount: Decimal = Field(..., description="Requested amount")
    filled_amount: Decimal = ZERO
    price: Decimal = ZERO
    total_value: Decimal = ZERO
    platform_fee: Decimal = ZERO
    venue_fee: Decimal = ZERO
    status: OrderStatus = OrderStatus.PENDING
    created_at: Optional[dt.datetime] = None
    completed_at: Optional[dt.datetime] = None


class Balance(BaseModel):
    """Per-user, per-asset ledger row."""

    user_id: str
    asset: str
    balance: Decimal = ZERO
    available_balance: Decimal = ZERO
    locked_balance: Decimal = ZERO


class BalanceDelta(BaseModel):
    """One leg of a settled fill."""

    asset: str
    amount: Decimal
