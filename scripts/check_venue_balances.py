#!/usr/bin/env python
"""List venue accounts holding a non-zero balance.

Uses the same venue client selection as the worker, so it doubles as a
credential check before the first reconciliation run.
"""

from __future__ import annotations

import asyncio
import logging
import sys

from settlement.clients import build_venue_client
from settlement.config import Settings
from settlement.errors import ConfigurationError, VenueError
from settlement.models_venue import nonzero_accounts


async def main_async(settings: Settings) -> None:
    venue = build_venue_client(settings)
    accounts = nonzero_accounts(await venue.list_accounts())
    if not accounts:
        print("No non-zero venue balances")
        return
    for acc in accounts:
        print(f"{acc['currency']}: available={acc['available']} hold={acc['hold']} total={acc['total']}")


def main() -> int:
    try:
        settings = Settings.from_env(require_database=False)
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1
    logging.basicConfig(level=settings.log_level)
    try:
        asyncio.run(main_async(settings))
    except VenueError as exc:
        print(f"Venue error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
