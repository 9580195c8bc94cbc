"""Pytest configuration for path setup and shared fixtures.

The test suite imports the ``settlement`` package from ``workers/src``.
When pytest is executed without the package installed, neither the
repository root (for ``tests.helpers``) nor ``workers/src`` is on
``sys.path``, so both are added here.

Database tests run against a file-backed SQLite database created under
``tmp_path`` through aiosqlite, one per test.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest
import pytest_asyncio

ROOT = Path(__file__).resolve().parents[1]

for path in (ROOT, ROOT / "workers" / "src"):
    path_str = str(path)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)

from settlement.clients.paper_venue import PaperVenueClient  # noqa: E402
from settlement.services.db_ledger_store import DatabaseLedgerStore  # noqa: E402


@pytest_asyncio.fixture
async def store(tmp_path):
    ledger_store = DatabaseLedgerStore.from_uri(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
    await ledger_store.init_db()
    yield ledger_store
    await ledger_store.close()


@pytest.fixture
def venue() -> PaperVenueClient:
    return PaperVenueClient()


@pytest.fixture(autouse=True)
def _clean_settlement_env(monkeypatch) -> None:
    """Keep settings from the developer's shell out of the tests."""
    for key in (
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
        "SLACK_ALERT_CHANNEL",
        "SLACK_CHANNEL_ID",
        "SECRETS_BASE_PATH",
    ):
        monkeypatch.delenv(key, raising=False)
        monkeypatch.delenv(f"{key}_FILE", raising=False)
