#!/usr/bin/env python
"""
Credit an asset balance to a user.

Usage
-----

.. code-block:: bash

    python scripts/add_balance.py --user-id 7f3c... --asset USD --amount 500

The amount must be positive.  The previous and new balance are printed.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from decimal import Decimal, InvalidOperation

from settlement.config import Settings
from settlement.errors import ConfigurationError, SettlementError
from settlement.services.db_ledger_store import DatabaseLedgerStore
from settlement.services.ledger import LedgerApplier


def _decimal(value: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation as exc:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}") from exc


def parse_args() -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Credit a balance to a user.")
    ap.add_argument("--user-id", required=True)
    ap.add_argument("--asset", required=True, help="Asset code, e.g. USD or BTC")
    ap.add_argument("--amount", required=True, type=_decimal)
    return ap.parse_args()


async def main_async(settings: Settings, user_id: str, asset: str, amount: Decimal) -> None:
    store = DatabaseLedgerStore.from_uri(settings.database_url or "")
    try:
        previous, current = await LedgerApplier(store).credit(user_id, asset, amount)
    finally:
        await store.close()
    print(f"{asset} balance for {user_id}: {previous} -> {current}")


def main() -> int:
    args = parse_args()
    try:
        settings = Settings.from_env(require_venue=False)
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1
    logging.basicConfig(level=settings.log_level)
    try:
        asyncio.run(main_async(settings, args.user_id, args.asset.upper(), args.amount))
    except SettlementError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
