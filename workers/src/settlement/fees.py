"""Platform fee schedule.

The exchange charges its own fee on the notional value of every fill,
on top of whatever the venue charges.  The default rate is 0.5%; a
per-asset override table can lower or raise it for individual base
assets.  Fees are quantised to eight decimal places (the scale of the
ledger columns) with ``ROUND_HALF_UP``.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Mapping, Optional

from .config import DEFAULT_PLATFORM_FEE_RATE, Settings

FEE_QUANTUM = Decimal("0.00000001")


class FeeSchedule:
    def __init__(
        self,
        default_rate: Decimal = DEFAULT_PLATFORM_FEE_RATE,
        overrides: Optional[Mapping[str, Decimal]] = None,
    ) -> None:
        self.default_rate = Decimal(default_rate)
        self.overrides: Dict[str, Decimal] = {
            asset.upper(): Decimal(rate) for asset, rate in (overrides or {}).items()
        }

    @classmethod
    def from_settings(cls, settings: Settings) -> "FeeSchedule":
        return cls(settings.platform_fee_rate, settings.platform_fee_schedule)

    def rate_for(self, asset: str) -> Decimal:
        return self.overrides.get(asset.upper(), self.default_rate)

    def platform_fee(self, filled_value: Decimal, asset: str) -> Decimal:
        """Return the platform fee for a fill of ``filled_value`` quote units."""
        fee = Decimal(filled_value) * self.rate_for(asset)
        return fee.quantize(FEE_QUANTUM, rounding=ROUND_HALF_UP)
