"""
Backfill balances for orders that completed without settling.

Orders completed before the ledger guard existed (or by hand in the
database) may have a fill recorded on the order row but no balance
movement.  :func:`backfill_completed_balances` walks the most recent
COMPLETED orders and applies their fill legs.  Legs that already have a
ledger entry are skipped, so running the backfill repeatedly is safe.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List

from .services.db_ledger_store import DatabaseLedgerStore
from .services.ledger import LedgerApplier

logger = logging.getLogger(__name__)


@dataclass
class BackfillSummary:
    examined: int = 0
    settled: List[str] = field(default_factory=list)
    already_settled: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


async def backfill_completed_balances(
    store: DatabaseLedgerStore, ledger: LedgerApplier, limit: int = 10
) -> BackfillSummary:
    """Apply fill legs for the ``limit`` most recent completed orders."""
    orders = await store.fetch_completed_orders(limit=limit)
    summary = BackfillSummary(examined=len(orders))
    logger.info("Found %d completed orders", len(orders))
    for order in orders:
        logger.info(
            "Order %s: %s %s %s for %s %s (fee %s), user %s",
            order.id,
            order.side.value,
            order.filled_amount,
            order.asset,
            order.total_value,
            order.quote,
            order.platform_fee,
            order.user_id,
        )
        for balance in await store.list_balances(order.user_id):
            logger.info("  current %s balance: %s", balance.asset, balance.balance)
        try:
            legs = await ledger.settle_order(order)
        except Exception as exc:
            logger.error("Failed to backfill order %s: %s", order.id, exc)
            summary.errors.append(order.id)
            continue
        if legs:
            summary.settled.append(order.id)
        else:
            summary.already_settled.append(order.id)
    logger.info(
        "Backfill finished: settled=%d already_settled=%d errors=%d",
        len(summary.settled),
        len(summary.already_settled),
        len(summary.errors),
    )
    return summary
