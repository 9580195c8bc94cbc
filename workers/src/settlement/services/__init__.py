"""Service layer for the settlement worker.

Persistence, ledger arithmetic, reconciliation and the run-level
reporting services (audit log, metrics and alerts).
"""

from .alert_service import AlertService  # noqa: F401
from .db_ledger_store import DatabaseLedgerStore  # noqa: F401
from .event_store import EventStore  # noqa: F401
from .ledger import LedgerApplier  # noqa: F401
from .metrics_service import RunMetrics  # noqa: F401
from .order_fetcher import PendingOrderFetcher  # noqa: F401
from .reconciler import OrderReconciler, RunSummary  # noqa: F401
