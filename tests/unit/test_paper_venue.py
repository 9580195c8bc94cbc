"""Tests for the in-memory paper venue client."""

import pytest

from settlement.clients.paper_venue import PaperVenueClient
from settlement.errors import VenueOrderNotFound, VenueUnavailable


@pytest.mark.asyncio
async def test_registered_orders_are_returned_in_the_requested_shape() -> None:
    venue = PaperVenueClient()
    venue.add_order("cb-1", "FILLED", "0.001", "100")
    venue.add_order("cb-2", "OPEN", nested=False)
    assert (await venue.get_order("cb-1"))["order"]["filled_value"] == "100"
    assert (await venue.get_order("cb-2"))["status"] == "OPEN"
    assert venue.calls == ["cb-1", "cb-2"]


@pytest.mark.asyncio
async def test_unknown_and_failing_orders_raise() -> None:
    venue = PaperVenueClient(failures=["cb-down"])
    with pytest.raises(VenueOrderNotFound):
        await venue.get_order("cb-unknown")
    with pytest.raises(VenueUnavailable):
        await venue.get_order("cb-down")


def test_from_file_rejects_non_object(tmp_path) -> None:
    path = tmp_path / "orders.json"
    path.write_text("[]", encoding="utf-8")
    with pytest.raises(ValueError):
        PaperVenueClient.from_file(str(path))
