"""
Healthcheck for the settlement worker container.

Verifies that the worker's dependencies import and reports which
configuration keys are present, without printing their values.  Exits
non-zero when the settings would not let a reconciliation run start.
"""

from __future__ import annotations

import sys
from typing import Dict, List, Optional

from .config import Settings
from .errors import ConfigurationError
from .secrets_manager import BaseSecretsManager, get_default_secrets_manager

REPORTED_KEYS = [
    "DATABASE_URL",
    "STATE_STORE_URI",
    "COINBASE_API_KEY",
    "COINBASE_API_SECRET",
    "USE_OFFICIAL_SDK",
    "PAPER_TRADING",
    "PAPER_ORDERS_PATH",
    "PLATFORM_FEE_RATE",
    "PLATFORM_FEE_SCHEDULE",
    "ALLOW_NEGATIVE_BALANCES",
    "EVENT_STORE_PATH",
    "PUSHGATEWAY_URL",
    "ALERT_ENABLE",
    "SLACK_BOT_TOKEN",
]


def key_report(secrets: BaseSecretsManager, keys: List[str] = REPORTED_KEYS) -> Dict[str, bool]:
    return {key: secrets.get_secret(key) is not None for key in keys}


def check(secrets: Optional[BaseSecretsManager] = None) -> List[str]:
    """Return a list of problems; empty when the worker can start."""
    secrets = secrets or get_default_secrets_manager()
    try:
        Settings.from_env(secrets)
    except ConfigurationError as exc:
        return [str(exc)]
    return []


def main() -> int:
    try:
        # Import the run path so missing dependencies fail the check
        from . import reconcile_main  # noqa: F401
    except ImportError as exc:  # pragma: no cover - healthcheck only
        print(f"Import error: {exc}", file=sys.stderr)
        return 1
    secrets = get_default_secrets_manager()
    print("Health Check:")
    for key, present in key_report(secrets).items():
        print(f"{key}: {'set' if present else 'missing'}")
    problems = check(secrets)
    for problem in problems:
        print(f"error: {problem}", file=sys.stderr)
    if problems:
        return 1
    print("ok")
    return 0


if __name__ == "__main__":
    sys.exit(main())
