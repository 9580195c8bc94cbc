#!/usr/bin/env python
"""Run one reconciliation pass over the PENDING orders.

Equivalent to the ``settlement-reconcile`` console script.  Configure
with ``DATABASE_URL`` and the venue credentials (or ``PAPER_TRADING``).
"""

from __future__ import annotations

import sys

from settlement.reconcile_main import main

if __name__ == "__main__":
    sys.exit(main())
