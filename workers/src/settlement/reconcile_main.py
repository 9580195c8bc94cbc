"""
Entry point for one settlement reconciliation run.

The worker is a batch job meant to be started by cron or a Kubernetes
CronJob.  Each invocation loads the PENDING orders, reconciles them
against the venue one at a time, pushes run metrics and raises an alert
if any order errored.

Exit codes: ``0`` when the run completed (per-order errors included;
those orders stay PENDING for the next run), ``1`` when the run could
not start or the pending list could not be loaded.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import Optional

from .clients import build_venue_client
from .config import Settings
from .errors import ConfigurationError
from .fees import FeeSchedule
from .services.alert_service import AlertService
from .services.db_ledger_store import DatabaseLedgerStore
from .services.event_store import EventStore
from .services.ledger import LedgerApplier
from .services.metrics_service import RunMetrics
from .services.reconciler import OrderReconciler, RunSummary, VenueClient

logger = logging.getLogger(__name__)


async def run(
    settings: Settings,
    *,
    venue: Optional[VenueClient] = None,
    store: Optional[DatabaseLedgerStore] = None,
    metrics: Optional[RunMetrics] = None,
) -> RunSummary:
    """Run one reconciliation pass with the given settings.

    ``venue`` and ``store`` override the ones built from ``settings``; a
    store passed in by the caller is not closed.
    """
    owns_store = store is None
    if store is None:
        if not settings.database_url:
            raise ConfigurationError("DATABASE_URL must be set")
        store = DatabaseLedgerStore.from_uri(settings.database_url)
    venue = venue or build_venue_client(settings)
    metrics = metrics or RunMetrics()
    event_store = EventStore(settings.event_store_path) if settings.event_store_path else None
    reconciler = OrderReconciler(
        store,
        venue,
        FeeSchedule.from_settings(settings),
        LedgerApplier(store, allow_negative_create=settings.allow_negative_balances),
        event_store=event_store,
        metrics=metrics,
    )
    try:
        summary = await reconciler.run()
    finally:
        if owns_store:
            await store.close()
    metrics.push(settings.pushgateway_url)
    await AlertService.from_settings(settings).notify_run(summary)
    return summary


def main() -> int:
    """Console entry point.  Returns the process exit code."""
    try:
        settings = Settings.from_env()
    except ConfigurationError as exc:
        logging.basicConfig(level=logging.INFO)
        logger.error("Configuration error: %s", exc)
        return 1
    logging.basicConfig(level=settings.log_level)
    logger.info("Checking pending orders...")
    try:
        asyncio.run(run(settings))
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc)
        return 1
    except Exception:
        logger.exception("Settlement run aborted")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
