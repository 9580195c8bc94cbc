"""
Run Metrics
===========

Prometheus metrics for one reconciliation run.  The worker is a batch
job rather than a long-lived service, so instead of exposing an HTTP
endpoint the metrics live in a private ``CollectorRegistry`` and are
pushed to a Prometheus Pushgateway when the run finishes.

Configuration
-------------

* ``PUSHGATEWAY_URL`` – address of the Pushgateway, e.g.
  ``localhost:9091``.  When unset, metrics are collected but not pushed.

Metrics
-------

* ``settlement_orders_total{outcome=...}`` – orders processed, by outcome
  (``completed``, ``cancelled``, ``failed``, ``unchanged``, ``skipped``,
  ``error``).
* ``settlement_balance_legs_total{asset=...}`` – balance legs applied.
* ``settlement_pending_orders`` – pending orders found at the start of
  the run.
* ``settlement_last_run_duration_seconds`` – wall time of the run.
* ``settlement_last_run_timestamp_seconds`` – completion time of the run.
"""

from __future__ import annotations

import logging
import time
from typing import Iterable, Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, push_to_gateway

from ..models import BalanceDelta

logger = logging.getLogger(__name__)


class RunMetrics:
    """Collect counters for a run and push them to a Pushgateway."""

    def __init__(self, registry: Optional[CollectorRegistry] = None, job: str = "settlement_reconcile") -> None:
        self.registry = registry or CollectorRegistry()
        self.job = job
        self.orders_counter = Counter(
            "settlement_orders",
            "Orders processed by the reconciler, by outcome",
            labelnames=["outcome"],
            registry=self.registry,
        )
        self.legs_counter = Counter(
            "settlement_balance_legs",
            "Balance legs applied, by asset",
            labelnames=["asset"],
            registry=self.registry,
        )
        self.pending_gauge = Gauge(
            "settlement_pending_orders",
            "Pending orders found at the start of the run",
            registry=self.registry,
        )
        self.duration_gauge = Gauge(
            "settlement_last_run_duration_seconds",
            "Duration of the last reconciliation run",
            registry=self.registry,
        )
        self.timestamp_gauge = Gauge(
            "settlement_last_run_timestamp_seconds",
            "Unix time at which the last reconciliation run finished",
            registry=self.registry,
        )
        self._started = time.monotonic()

    def start(self, pending: int) -> None:
        self._started = time.monotonic()
        self.pending_gauge.set(pending)

    def observe_outcome(self, outcome: str, legs: Iterable[BalanceDelta] = ()) -> None:
        self.orders_counter.labels(outcome=outcome).inc()
        for leg in legs:
            self.legs_counter.labels(asset=leg.asset).inc()

    def finish(self) -> None:
        self.duration_gauge.set(time.monotonic() - self._started)
        self.timestamp_gauge.set_to_current_time()

    def push(self, gateway: Optional[str]) -> None:
        """Push collected metrics; failures are logged, never raised."""
        if not gateway:
            return
        try:
            push_to_gateway(gateway, job=self.job, registry=self.registry)
        except Exception as exc:
            logger.warning("Failed to push metrics to %s: %s", gateway, exc)
