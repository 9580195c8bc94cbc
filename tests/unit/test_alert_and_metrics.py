"""Tests for AlertService and RunMetrics.

AlertService is exercised with Slack credentials absent (log fallback)
and with a stub WebClient; ``_send_slack_message`` is monkeypatched
where only the decision to alert matters.  RunMetrics uses a private
``CollectorRegistry`` so tests never touch the global registry.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import List
from urllib.error import URLError

import pytest
from prometheus_client import CollectorRegistry
from slack_sdk.errors import SlackApiError

from settlement.config import Settings
from settlement.models import BalanceDelta
from settlement.services import metrics_service
from settlement.services.alert_service import AlertService
from settlement.services.metrics_service import RunMetrics
from settlement.services.reconciler import RunSummary


class StubWebClient:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.messages: List[dict] = []

    def chat_postMessage(self, **kwargs):
        if self.fail:
            raise SlackApiError("channel_not_found", {"ok": False, "error": "channel_not_found"})
        self.messages.append(kwargs)
        return {"ok": True}


@pytest.mark.asyncio
async def test_no_alert_for_clean_run(monkeypatch) -> None:
    alert = AlertService(enabled=True)
    messages: List[str] = []

    async def fake_send(message: str) -> None:
        messages.append(message)

    monkeypatch.setattr(alert, "_send_slack_message", fake_send)
    assert await alert.notify_run(RunSummary(total=3, completed=3)) is False
    assert messages == []


@pytest.mark.asyncio
async def test_disabled_alerts_only_log() -> None:
    alert = AlertService(enabled=False, slack_token="xoxb", slack_channel="C1", client=StubWebClient())
    assert await alert.notify_run(RunSummary(total=1, errors=["o-1"])) is False
    assert alert.client.messages == []


@pytest.mark.asyncio
async def test_errors_are_posted_to_slack() -> None:
    client = StubWebClient()
    alert = AlertService(enabled=True, slack_token="xoxb", slack_channel="C1", client=client)
    assert await alert.notify_run(RunSummary(total=2, completed=1, errors=["o-7"])) is True
    assert client.messages[0]["channel"] == "C1"
    assert "o-7" in client.messages[0]["text"]
    assert "1 order error(s) out of 2" in client.messages[0]["text"]


@pytest.mark.asyncio
async def test_missing_slack_config_falls_back_to_log(caplog) -> None:
    alert = AlertService(enabled=True)
    with caplog.at_level(logging.WARNING):
        assert await alert.notify_run(RunSummary(total=1, errors=["o-1"])) is True
    assert any("ALERT:" in record.getMessage() for record in caplog.records)


@pytest.mark.asyncio
async def test_slack_failure_is_logged_not_raised(caplog) -> None:
    alert = AlertService(enabled=True, slack_token="xoxb", slack_channel="C1", client=StubWebClient(fail=True))
    with caplog.at_level(logging.WARNING):
        await alert.notify_run(RunSummary(total=1, errors=["o-1"]))
    assert any("ALERT:" in record.getMessage() for record in caplog.records)


def test_summary_lists_a_bounded_number_of_orders() -> None:
    errors = [f"o-{i}" for i in range(25)]
    text = AlertService.format_summary(RunSummary(total=25, errors=errors))
    assert "o-19" in text
    assert "o-20" not in text
    assert "(+5 more)" in text


def test_from_settings() -> None:
    alert = AlertService.from_settings(Settings(alert_enable=True, slack_channel="C9"))
    assert alert.enabled is True
    assert alert.slack_channel == "C9"
    assert alert.client is None


def test_run_metrics_counts_outcomes_and_legs() -> None:
    registry = CollectorRegistry()
    metrics = RunMetrics(registry=registry)
    metrics.start(3)
    metrics.observe_outcome(
        "completed",
        [BalanceDelta(asset="BTC", amount=Decimal("0.001")), BalanceDelta(asset="USD", amount=Decimal("-100.5"))],
    )
    metrics.observe_outcome("unchanged")
    metrics.observe_outcome("error")
    metrics.finish()
    assert registry.get_sample_value("settlement_pending_orders") == 3
    assert registry.get_sample_value("settlement_orders_total", {"outcome": "completed"}) == 1
    assert registry.get_sample_value("settlement_orders_total", {"outcome": "error"}) == 1
    assert registry.get_sample_value("settlement_balance_legs_total", {"asset": "USD"}) == 1
    assert registry.get_sample_value("settlement_last_run_timestamp_seconds") > 0


def test_push_failure_is_logged(monkeypatch, caplog) -> None:
    pushed = []

    def fake_push(gateway, job, registry):
        pushed.append((gateway, job))
        raise OSError("connection refused")

    monkeypatch.setattr(metrics_service, "push_to_gateway", fake_push)
    metrics = RunMetrics(registry=CollectorRegistry())
    metrics.push(None)
    assert pushed == []
    with caplog.at_level(logging.WARNING):
        metrics.push("localhost:9091")
    assert pushed == [("localhost:9091", "settlement_reconcile")]
    assert any("Failed to push metrics" in record.getMessage() for record in caplog.records)


class UnreachableWebClient:
    def chat_postMessage(self, **kwargs):
        raise URLError("connection refused")


@pytest.mark.asyncio
async def test_slack_transport_failure_is_logged_not_raised(caplog) -> None:
    alert = AlertService(enabled=True, slack_token="xoxb", slack_channel="C1", client=UnreachableWebClient())
    with caplog.at_level(logging.WARNING):
        assert await alert.notify_run(RunSummary(total=1, errors=["o-1"])) is True
    assert any("ALERT:" in record.getMessage() for record in caplog.records)


def test_malformed_gateway_url_is_logged(caplog) -> None:
    metrics = RunMetrics(registry=CollectorRegistry())
    with caplog.at_level(logging.WARNING):
        metrics.push("http://localhost:notaport")
    assert any("Failed to push metrics" in record.getMessage() for record in caplog.records)
