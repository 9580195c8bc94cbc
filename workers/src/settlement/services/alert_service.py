"""
Alert Service
=============

Notifies operators through Slack when a reconciliation run finishes
with per-order errors.  Orders that error stay PENDING and are retried
on the next run, but a run that keeps failing the same orders needs a
human, so the alert lists the affected order ids.

Configuration
-------------

``ALERT_ENABLE``
    Set to ``true``/``1``/``yes`` to enable alerting.  When disabled the
    run summary is only logged.

``SLACK_BOT_TOKEN`` / ``SLACK_ALERT_CHANNEL`` (or ``SLACK_CHANNEL_ID``)
    Slack credentials.  Without both, alerts are written to the log at
    WARNING level instead.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError

from ..config import Settings
from .reconciler import RunSummary

logger = logging.getLogger(__name__)

# Keep alerts readable; the full list is in the worker log.
MAX_LISTED_ORDERS = 20


class AlertService:
    """Send a Slack alert summarising a run that had errors."""

    def __init__(
        self,
        *,
        enabled: bool = False,
        slack_token: Optional[str] = None,
        slack_channel: Optional[str] = None,
        client: Optional[WebClient] = None,
    ) -> None:
        self.enabled = enabled
        self.slack_token = slack_token
        self.slack_channel = slack_channel
        self.client = client
        if self.client is None and self.enabled and self.slack_token:
            self.client = WebClient(token=self.slack_token)
        if self.enabled and not (self.slack_token and self.slack_channel):
            logger.warning(
                "Alerts enabled but Slack token or channel missing; falling back to log output"
            )

    @classmethod
    def from_settings(cls, settings: Settings) -> "AlertService":
        return cls(
            enabled=settings.alert_enable,
            slack_token=settings.slack_bot_token,
            slack_channel=settings.slack_channel,
        )

    @staticmethod
    def format_summary(summary: RunSummary) -> str:
        listed = summary.errors[:MAX_LISTED_ORDERS]
        more = len(summary.errors) - len(listed)
        text = (
            f"Settlement run finished with {len(summary.errors)} order error(s) "
            f"out of {summary.total}: {', '.join(listed)}"
        )
        if more > 0:
            text += f" (+{more} more)"
        return text

    async def _send_slack_message(self, text: str) -> None:
        """Send a message to Slack if configured; otherwise log."""
        if self.client is None or not self.slack_channel:
            logger.warning("ALERT: %s", text)
            return
        try:
            await asyncio.to_thread(self.client.chat_postMessage, channel=self.slack_channel, text=text)
            logger.info("Sent Slack alert: %s", text)
        except SlackApiError as exc:
            logger.error("Failed to send Slack alert: %s", exc)
            logger.warning("ALERT: %s", text)
        except Exception as exc:
            logger.error("Slack alert transport failed: %s", exc)
            logger.warning("ALERT: %s", text)

    async def notify_run(self, summary: RunSummary) -> bool:
        """Alert on ``summary`` if it has errors.  Returns True if an alert was raised."""
        if not summary.errors:
            return False
        if not self.enabled:
            logger.info("Run had %d order error(s); alerts disabled", len(summary.errors))
            return False
        await self._send_slack_message(self.format_summary(summary))
        return True
