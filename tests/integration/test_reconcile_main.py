"""End-to-end tests for the reconciliation entry point in paper mode.

The database is a SQLite file seeded before ``main()`` runs; venue
responses come from a ``PAPER_ORDERS_PATH`` JSON file.
"""

from __future__ import annotations

import asyncio
import json
from decimal import Decimal
from urllib.error import URLError

from slack_sdk import WebClient

from settlement import healthcheck, reconcile_main
from settlement.config import Settings
from settlement.models import OrderStatus
from settlement.services.db_ledger_store import DatabaseLedgerStore
from tests.helpers.factories import make_order


async def _seed(uri: str, orders) -> None:
    store = DatabaseLedgerStore.from_uri(uri)
    try:
        await store.init_db()
        async with store.transaction() as conn:
            await store.upsert_balance(conn, "user-1", "USD", Decimal("1000"))
        for order in orders:
            await store.insert_order(order)
    finally:
        await store.close()


async def _status(uri: str, order_id: str) -> OrderStatus:
    store = DatabaseLedgerStore.from_uri(uri)
    try:
        return (await store.get_order(order_id)).status
    finally:
        await store.close()


def _configure(monkeypatch, tmp_path, responses) -> str:
    uri = f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}"
    orders_file = tmp_path / "paper_orders.json"
    orders_file.write_text(json.dumps(responses), encoding="utf-8")
    monkeypatch.setenv("DATABASE_URL", uri)
    monkeypatch.setenv("PAPER_TRADING", "true")
    monkeypatch.setenv("PAPER_ORDERS_PATH", str(orders_file))
    return uri


def test_run_completes_with_per_order_errors(monkeypatch, tmp_path) -> None:
    uri = _configure(
        monkeypatch,
        tmp_path,
        {"cb-ok": {"order": {"status": "FILLED", "filled_size": "0.001", "filled_value": "100"}}},
    )
    ok = make_order(external_order_id="cb-ok")
    unknown = make_order(external_order_id="cb-unknown")
    asyncio.run(_seed(uri, [ok, unknown]))

    assert reconcile_main.main() == 0
    assert asyncio.run(_status(uri, ok.id)) is OrderStatus.COMPLETED
    assert asyncio.run(_status(uri, unknown.id)) is OrderStatus.PENDING


def test_missing_configuration_exits_non_zero(monkeypatch) -> None:
    monkeypatch.setenv("PAPER_TRADING", "true")
    assert reconcile_main.main() == 1


def test_unusable_store_exits_non_zero(monkeypatch, tmp_path) -> None:
    # No tables were ever created, so loading the pending list fails
    _configure(monkeypatch, tmp_path, {})
    assert reconcile_main.main() == 1


def test_healthcheck_reports_keys_without_values(monkeypatch, tmp_path, capsys) -> None:
    _configure(monkeypatch, tmp_path, {})
    assert healthcheck.main() == 0
    out = capsys.readouterr().out
    assert "DATABASE_URL: set" in out
    assert "COINBASE_API_KEY: missing" in out
    assert "sqlite" not in out


def test_healthcheck_fails_without_database(monkeypatch, capsys) -> None:
    monkeypatch.setenv("PAPER_TRADING", "true")
    assert healthcheck.main() == 1
    assert "DATABASE_URL" in capsys.readouterr().err


def _break_reporting(monkeypatch) -> None:
    def unreachable(self, **kwargs):
        raise URLError("connection refused")

    monkeypatch.setattr(WebClient, "chat_postMessage", unreachable)
    monkeypatch.setenv("ALERT_ENABLE", "true")
    monkeypatch.setenv("SLACK_BOT_TOKEN", "xoxb-test")
    monkeypatch.setenv("SLACK_ALERT_CHANNEL", "C1")
    monkeypatch.setenv("PUSHGATEWAY_URL", "http://localhost:notaport")


def test_reporting_failures_do_not_fail_a_completed_run(monkeypatch, tmp_path) -> None:
    uri = _configure(monkeypatch, tmp_path, {})
    _break_reporting(monkeypatch)
    unknown = make_order(external_order_id="cb-unknown")
    asyncio.run(_seed(uri, [unknown]))

    summary = asyncio.run(reconcile_main.run(Settings.from_env()))

    assert summary.errors == [unknown.id]
    assert reconcile_main.main() == 0
