from __future__ import annotations

import logging
from typing import List

from ..models import Order
from .db_ledger_store import DatabaseLedgerStore

logger = logging.getLogger(__name__)


class PendingOrderFetcher:
    """Load the orders a reconciliation run has to visit.

    Query failures propagate: without the pending list there is nothing
    safe to do, so the run aborts.
    """

    def __init__(self, store: DatabaseLedgerStore) -> None:
        self.store = store

    async def fetch_pending(self) -> List[Order]:
        orders = await self.store.fetch_pending_orders()
        logger.info("Found %d pending orders", len(orders))
        return orders
