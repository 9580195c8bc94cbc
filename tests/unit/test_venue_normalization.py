"""Tests for venue payload normalisation, status mapping and fill pricing."""

from __future__ import annotations

from decimal import Decimal

import pytest

from settlement.fees import FeeSchedule
from settlement.models import OrderStatus
from settlement.models_venue import map_venue_status, nonzero_accounts, normalize_venue_order
from settlement.services.reconciler import derive_fill


FIELDS = {
    "order_id": "cb-1",
    "status": "FILLED",
    "filled_size": "0.001",
    "filled_value": "100",
    "average_filled_price": "99999",
    "total_fees": "0.6",
}


def test_nested_and_flat_payloads_normalise_identically() -> None:
    nested = normalize_venue_order({"order": dict(FIELDS)})
    flat = normalize_venue_order(dict(FIELDS))
    assert nested == flat
    assert nested["status"] == "FILLED"
    assert nested["filled_size"] == Decimal("0.001")
    assert nested["filled_value"] == Decimal("100")
    assert nested["total_fees"] == Decimal("0.6")


def test_nested_fields_take_precedence_over_top_level() -> None:
    payload = {"status": "OPEN", "order": {"status": "FILLED"}}
    assert normalize_venue_order(payload)["status"] == "FILLED"


def test_missing_numeric_fields_become_zero() -> None:
    result = normalize_venue_order({"order": {"status": "OPEN", "filled_size": ""}})
    assert result["filled_size"] == Decimal("0")
    assert result["filled_value"] == Decimal("0")
    assert result["average_filled_price"] == Decimal("0")
    assert result["order_id"] is None


def test_non_mapping_payload_is_rejected() -> None:
    with pytest.raises(ValueError):
        normalize_venue_order(["not", "a", "dict"])


def test_non_numeric_field_is_rejected() -> None:
    with pytest.raises(ValueError):
        normalize_venue_order({"status": "FILLED", "filled_size": "lots"})


@pytest.mark.parametrize(
    "vendor, expected",
    [
        ("FILLED", OrderStatus.COMPLETED),
        ("CANCELLED", OrderStatus.CANCELLED),
        ("EXPIRED", OrderStatus.CANCELLED),
        ("FAILED", OrderStatus.FAILED),
        ("OPEN", OrderStatus.PENDING),
        ("PENDING", OrderStatus.PENDING),
        ("filled", OrderStatus.PENDING),
        (None, OrderStatus.PENDING),
    ],
)
def test_status_mapping_is_exact(vendor, expected) -> None:
    status = map_venue_status(vendor)
    assert status is expected
    assert status.is_terminal is (expected is not OrderStatus.PENDING)


def test_fill_price_is_value_over_size() -> None:
    venue_order = normalize_venue_order(
        {"status": "FILLED", "filled_size": "0.1", "filled_value": "311.35", "average_filled_price": "1"}
    )
    fill = derive_fill(venue_order, FeeSchedule(), "ETH")
    assert fill.filled_price == Decimal("3113.5")
    assert fill.platform_fee == Decimal("1.55675")


def test_fill_price_falls_back_to_average_price_without_fill() -> None:
    venue_order = normalize_venue_order(
        {"status": "CANCELLED", "filled_size": "0", "filled_value": "0", "average_filled_price": "42000"}
    )
    fill = derive_fill(venue_order, FeeSchedule(), "BTC")
    assert fill.filled_price == Decimal("42000")
    assert fill.platform_fee == Decimal("0")


def test_nonzero_accounts_filters_empty_wallets() -> None:
    payload = {
        "accounts": [
            {"currency": "BTC", "available_balance": {"value": "0.5", "currency": "BTC"}, "hold": {"value": "0"}},
            {"currency": "ETH", "available_balance": {"value": "0"}, "hold": {"value": "0"}},
            {"currency": "USD", "available_balance": {"value": "0"}, "hold": {"value": "25.10"}},
        ]
    }
    accounts = nonzero_accounts(payload)
    assert [acc["currency"] for acc in accounts] == ["BTC", "USD"]
    assert accounts[1]["total"] == Decimal("25.10")
