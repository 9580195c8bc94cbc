"""
Venue status reconciler.

Orders placed on the venue are recorded locally as PENDING.  The
reconciler walks every pending order, asks the venue for its
authoritative state and writes the result back:

1. ``get_order`` on the venue, normalised by
   :func:`~settlement.models_venue.normalize_venue_order`.
2. The fill price is recomputed as ``filled_value / filled_size`` when
   both are positive (falling back to the vendor's average price) and
   the platform fee is taken from the fee schedule.
3. The vendor status is mapped onto the local enum.  A terminal status
   writes the fill fields; COMPLETED also stamps ``completed_at``.  A
   status that maps to PENDING leaves the fill fields untouched and only
   bumps ``updated_at``.
4. A COMPLETED order with a positive fill is settled on the ledger in
   the same transaction as the order update.

Orders are processed strictly one after another.  Any exception while
processing one order is logged against that order, the transaction is
rolled back (the order stays PENDING for the next run) and the batch
moves on.  Only failing to load the pending list aborts the run.
"""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable, Dict, List, Optional, Protocol

from ..errors import SettlementError
from ..fees import FeeSchedule
from ..models import BalanceDelta, Order, OrderStatus, ZERO
from ..models_venue import VenueOrder, map_venue_status, normalize_venue_order
from .db_ledger_store import DatabaseLedgerStore
from .event_store import EventStore
from .ledger import LedgerApplier
from .metrics_service import RunMetrics
from .order_fetcher import PendingOrderFetcher

logger = logging.getLogger(__name__)

PRICE_QUANTUM = Decimal("0.00000001")


class VenueClient(Protocol):
    async def get_order(self, order_id: str) -> Any: ...


@dataclass
class FillDetails:
    filled_amount: Decimal
    filled_value: Decimal
    filled_price: Decimal
    platform_fee: Decimal
    venue_fee: Decimal


@dataclass
class ReconcileResult:
    order_id: str
    venue_status: Optional[str]
    status: OrderStatus
    fill: FillDetails
    updated: bool
    legs: List[BalanceDelta] = field(default_factory=list)

    @property
    def outcome(self) -> str:
        if not self.updated:
            return "skipped"
        if not self.status.is_terminal:
            return "unchanged"
        return self.status.value.lower()


@dataclass
class RunSummary:
    total: int = 0
    completed: int = 0
    cancelled: int = 0
    failed: int = 0
    unchanged: int = 0
    skipped: int = 0
    errors: List[str] = field(default_factory=list)

    def record(self, result: ReconcileResult) -> None:
        outcome = result.outcome
        setattr(self, outcome, getattr(self, outcome) + 1)

    def record_error(self, order_id: str) -> None:
        self.errors.append(order_id)

    @property
    def processed(self) -> int:
        return self.completed + self.cancelled + self.failed + self.unchanged + self.skipped


def derive_fill(venue_order: VenueOrder, fees: FeeSchedule, asset: str) -> FillDetails:
    """Compute the local fill fields from a normalised venue order."""
    filled_amount = venue_order["filled_size"]
    filled_value = venue_order["filled_value"]
    if filled_amount > ZERO and filled_value > ZERO:
        filled_price = (filled_value / filled_amount).quantize(PRICE_QUANTUM, rounding=ROUND_HALF_UP)
    else:
        filled_price = venue_order["average_filled_price"]
    return FillDetails(
        filled_amount=filled_amount,
        filled_value=filled_value,
        filled_price=filled_price,
        platform_fee=fees.platform_fee(filled_value, asset),
        venue_fee=venue_order["total_fees"],
    )


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class OrderReconciler:
    """Reconcile pending orders against the venue and settle fills."""

    def __init__(
        self,
        store: DatabaseLedgerStore,
        venue: VenueClient,
        fees: FeeSchedule,
        ledger: LedgerApplier,
        *,
        event_store: Optional[EventStore] = None,
        metrics: Optional[RunMetrics] = None,
        clock: Callable[[], dt.datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.venue = venue
        self.fees = fees
        self.ledger = ledger
        self.fetcher = PendingOrderFetcher(store)
        self.event_store = event_store
        self.metrics = metrics
        self.clock = clock

    async def reconcile_order(self, order: Order) -> ReconcileResult:
        """Reconcile one order.  Exceptions propagate to the caller."""
        if not order.external_order_id:
            raise SettlementError(f"order {order.id} has no external order id")
        logger.info("Checking order %s (venue: %s)", order.id, order.external_order_id)
        payload = await self.venue.get_order(order.external_order_id)
        logger.debug("Venue response for %s: %s", order.id, payload)
        venue_order = normalize_venue_order(payload)
        fill = derive_fill(venue_order, self.fees, order.asset)
        status = map_venue_status(venue_order["status"])
        logger.info(
            "  status=%s filled=%s %s value=%s price=%s",
            venue_order["status"],
            fill.filled_amount,
            order.asset,
            fill.filled_value,
            fill.filled_price,
        )

        values: Dict[str, Any] = {}
        if status.is_terminal:
            values = {
                "filled_amount": fill.filled_amount,
                "price": fill.filled_price,
                "total_value": fill.filled_value,
                "platform_fee": fill.platform_fee,
                "venue_fee": fill.venue_fee,
                "status": status,
            }
            if status is OrderStatus.COMPLETED:
                values["completed_at"] = self.clock()

        legs: List[BalanceDelta] = []
        async with self.store.transaction() as conn:
            updated = await self.store.update_order(conn, order.id, values)
            if not updated:
                logger.warning("Order %s is no longer PENDING; leaving it alone", order.id)
            elif status is OrderStatus.COMPLETED and fill.filled_amount > ZERO:
                legs = await self.ledger.apply_fill(
                    conn, order, fill.filled_amount, fill.filled_value, fill.platform_fee
                )

        if updated:
            logger.info("  Updated order %s status to %s", order.id, status.value)
        return ReconcileResult(
            order_id=order.id,
            venue_status=venue_order["status"],
            status=status,
            fill=fill,
            updated=updated,
            legs=legs,
        )

    async def run(self) -> RunSummary:
        """Reconcile every pending order once, sequentially."""
        orders = await self.fetcher.fetch_pending()
        summary = RunSummary(total=len(orders))
        if self.metrics:
            self.metrics.start(len(orders))
        for order in orders:
            if not order.external_order_id:
                logger.warning("Order %s has no venue order id, skipping", order.id)
                summary.skipped += 1
                if self.metrics:
                    self.metrics.observe_outcome("skipped")
                continue
            try:
                result = await self.reconcile_order(order)
            except Exception as exc:
                logger.error(
                    "Error checking order %s: %s",
                    order.id,
                    exc,
                    exc_info=not isinstance(exc, SettlementError),
                )
                summary.record_error(order.id)
                if self.metrics:
                    self.metrics.observe_outcome("error")
                await self._log_event("order_error", {"order_id": order.id, "error": str(exc)})
                continue
            summary.record(result)
            if self.metrics:
                self.metrics.observe_outcome(result.outcome, result.legs)
            await self._log_result(order, result)
        if self.metrics:
            self.metrics.finish()
        logger.info(
            "Finished checking pending orders: total=%d completed=%d cancelled=%d failed=%d "
            "unchanged=%d skipped=%d errors=%d",
            summary.total,
            summary.completed,
            summary.cancelled,
            summary.failed,
            summary.unchanged,
            summary.skipped,
            len(summary.errors),
        )
        return summary

    async def _log_result(self, order: Order, result: ReconcileResult) -> None:
        await self._log_event(
            "order_reconciled",
            {
                "order_id": order.id,
                "external_order_id": order.external_order_id,
                "venue_status": result.venue_status,
                "status": result.status.value,
                "filled_amount": result.fill.filled_amount,
                "total_value": result.fill.filled_value,
                "price": result.fill.filled_price,
                "platform_fee": result.fill.platform_fee,
            },
        )
        if result.legs:
            await self._log_event(
                "fill_settled",
                {
                    "order_id": order.id,
                    "user_id": order.user_id,
                    "legs": [{"asset": leg.asset, "amount": leg.amount} for leg in result.legs],
                },
            )

    async def _log_event(self, event_type: str, data: Dict[str, Any]) -> None:
        if self.event_store is None:
            return
        try:
            await self.event_store.log(event_type, data)
        except OSError as exc:
            # audit log is best effort
            logger.warning("Failed to write %s event: %s", event_type, exc)
