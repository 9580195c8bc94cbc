#!/usr/bin/env python
"""
Apply missing balance legs for recently completed orders.

Usage
-----

.. code-block:: bash

    DATABASE_URL=postgresql+asyncpg://... python scripts/backfill_completed_balances.py --limit 10

Orders whose legs already have ledger entries are left alone, so the
script can be re-run safely.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from settlement.backfill import backfill_completed_balances
from settlement.config import Settings
from settlement.errors import ConfigurationError
from settlement.services.db_ledger_store import DatabaseLedgerStore
from settlement.services.ledger import LedgerApplier


def parse_args() -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Backfill balances for completed orders.")
    ap.add_argument("--limit", type=int, default=10, help="Number of recent completed orders to examine")
    return ap.parse_args()


async def main_async(settings: Settings, limit: int) -> int:
    store = DatabaseLedgerStore.from_uri(settings.database_url or "")
    try:
        ledger = LedgerApplier(store, allow_negative_create=settings.allow_negative_balances)
        summary = await backfill_completed_balances(store, ledger, limit=limit)
    finally:
        await store.close()
    return 1 if summary.errors else 0


def main() -> int:
    args = parse_args()
    try:
        settings = Settings.from_env(require_venue=False)
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1
    logging.basicConfig(level=settings.log_level)
    return asyncio.run(main_async(settings, args.limit))


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
