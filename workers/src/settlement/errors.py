"""Exception hierarchy for the settlement worker.

Errors fall into two groups.  ``ConfigurationError`` is fatal: the
entry point logs it and exits non-zero before any order is touched.
Everything else is raised while processing a single order and is
caught by the reconciler, which logs it against the order id and moves
on to the next order.
"""

from __future__ import annotations

from decimal import Decimal


class SettlementError(Exception):
    """Base class for all settlement worker errors."""


class ConfigurationError(SettlementError):
    """Required configuration is missing or malformed."""


class VenueError(SettlementError):
    """The trading venue rejected a request."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class VenueOrderNotFound(VenueError):
    """The venue has no order with the requested id."""


class VenueUnavailable(VenueError):
    """Transport failure or 5xx response; safe to retry."""


class NegativeBalanceError(SettlementError):
    """A debit leg would create a balance row with a negative value."""

    def __init__(self, user_id: str, asset: str, delta: Decimal) -> None:
        super().__init__(
            f"refusing to create {asset} balance for user {user_id} at {delta}"
        )
        self.user_id = user_id
        self.asset = asset
        self.delta = delta
