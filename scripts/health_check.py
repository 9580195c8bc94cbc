#!/usr/bin/env python
"""Report which settlement configuration keys are set.

Operators run this before enabling the reconciliation CronJob.  Values
are never printed, only whether each key is present.
"""

from __future__ import annotations

import sys

from settlement.healthcheck import main

if __name__ == "__main__":
    sys.exit(main())
