"""
Ledger balance applier.

A filled order moves money on two legs of the user's ledger:

* **BUY**: the base asset is credited with the filled quantity and the
  quote asset is debited with the filled notional plus the platform fee.
* **SELL**: the quote asset is credited with the filled notional minus
  the platform fee and the base asset is debited with the filled
  quantity.

Both legs are written through the caller's connection, so they commit
together with the order update that triggered them.  Each leg first
records a ``ledger_entries`` row keyed by ``(order_id, asset)``; a leg
whose entry already exists is skipped, which makes settling the same
order twice a no-op.  Credit legs are applied before debit legs so a
first-ever trade in an asset never has to create a row below zero.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import List, Tuple

from sqlalchemy.ext.asyncio import AsyncConnection

from ..errors import SettlementError
from ..models import BalanceDelta, Order, OrderSide, ZERO
from .db_ledger_store import DatabaseLedgerStore

logger = logging.getLogger(__name__)


def fill_legs(
    side: OrderSide,
    asset: str,
    quote: str,
    filled_amount: Decimal,
    filled_value: Decimal,
    platform_fee: Decimal,
) -> List[BalanceDelta]:
    """Return the two balance deltas of a fill, credit leg first."""
    if side is OrderSide.BUY:
        return [
            BalanceDelta(asset=asset, amount=filled_amount),
            BalanceDelta(asset=quote, amount=-(filled_value + platform_fee)),
        ]
    return [
        BalanceDelta(asset=quote, amount=filled_value - platform_fee),
        BalanceDelta(asset=asset, amount=-filled_amount),
    ]


class LedgerApplier:
    """Apply fill legs and manual credits to the balance table."""

    def __init__(self, store: DatabaseLedgerStore, *, allow_negative_create: bool = False) -> None:
        self.store = store
        self.allow_negative_create = allow_negative_create

    async def apply_fill(
        self,
        conn: AsyncConnection,
        order: Order,
        filled_amount: Decimal,
        filled_value: Decimal,
        platform_fee: Decimal,
    ) -> List[BalanceDelta]:
        """Apply both legs of ``order``'s fill inside ``conn``.

        Returns the legs that were actually applied (empty when the fill
        had already been settled).
        """
        applied: List[BalanceDelta] = []
        legs = fill_legs(order.side, order.asset, order.quote, filled_amount, filled_value, platform_fee)
        for leg in legs:
            recorded = await self.store.record_ledger_entry(
                conn, order.id, order.user_id, leg.asset, leg.amount
            )
            if not recorded:
                logger.info("Order %s: %s leg already settled, skipping", order.id, leg.asset)
                continue
            await self.store.upsert_balance(
                conn,
                order.user_id,
                leg.asset,
                leg.amount,
                allow_negative_create=self.allow_negative_create,
            )
            applied.append(leg)
        if applied:
            logger.info(
                "Order %s: applied %s for user %s",
                order.id,
                ", ".join(f"{leg.amount:+} {leg.asset}" for leg in applied),
                order.user_id,
            )
        return applied

    async def settle_order(self, order: Order) -> List[BalanceDelta]:
        """Settle an already-completed order in its own transaction."""
        if order.filled_amount <= ZERO:
            return []
        async with self.store.transaction() as conn:
            return await self.apply_fill(
                conn, order, order.filled_amount, order.total_value, order.platform_fee
            )

    async def credit(self, user_id: str, asset: str, amount: Decimal) -> Tuple[Decimal, Decimal]:
        """Credit ``amount`` of ``asset`` to a user outside of any order.

        Returns the balance before and after the credit.
        """
        if amount <= ZERO:
            raise SettlementError(f"credit amount must be positive, got {amount}")
        before = await self.store.get_balance(user_id, asset)
        async with self.store.transaction() as conn:
            await self.store.upsert_balance(conn, user_id, asset, amount)
        after = await self.store.get_balance(user_id, asset)
        previous = before.balance if before is not None else ZERO
        current = after.balance if after is not None else amount
        return previous, current
