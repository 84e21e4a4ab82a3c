# tests/unit/test_reconciler.py
"""Sync Reconciler: which fulfilled trades still count against a listing."""
from datetime import UTC, datetime, timedelta

from src.cx_inventory.domain.availability import ReservationTotals, sell_quantities
from src.cx_inventory.domain.models import (
    FulfilledTrade,
    InventoryPosition,
    MaxSell,
    NoLimit,
    Reserve,
)
from src.cx_inventory.domain.reconciler import counted_fulfilled_quantity, counts_against_listing

SYNC = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)
BEFORE = SYNC - timedelta(hours=1)
AFTER = SYNC + timedelta(hours=1)


class TestCountsAgainstListing:
    def test_max_sell_counts_regardless_of_sync(self) -> None:
        assert counts_against_listing(MaxSell(500), FulfilledTrade(5, BEFORE), SYNC)
        assert counts_against_listing(MaxSell(500), FulfilledTrade(5, AFTER), SYNC)

    def test_inventory_backed_counts_only_after_sync(self) -> None:
        for policy in (NoLimit(), Reserve(10)):
            assert not counts_against_listing(policy, FulfilledTrade(5, BEFORE), SYNC)
            assert counts_against_listing(policy, FulfilledTrade(5, AFTER), SYNC)

    def test_fulfilled_at_exact_sync_time_is_already_reflected(self) -> None:
        assert not counts_against_listing(NoLimit(), FulfilledTrade(5, SYNC), SYNC)

    def test_no_sync_time_counts_everything(self) -> None:
        assert counts_against_listing(NoLimit(), FulfilledTrade(5, BEFORE), None)


class TestScenarios:
    def test_max_sell_fulfilled_to_cap(self) -> None:
        # MaxSell 500 over 1000 synced, a 500 reservation fulfilled
        q = sell_quantities(
            MaxSell(500),
            InventoryPosition(quantity=1000, last_synced_at=SYNC),
            ReservationTotals(),
            [FulfilledTrade(quantity=500, updated_at=BEFORE)],
            SYNC,
        )
        assert q.available_quantity == 500
        assert q.fulfilled_quantity == 500
        assert q.remaining_quantity == 0

    def test_max_sell_independent_of_sync_timestamps(self) -> None:
        for synced_at in (None, BEFORE, AFTER):
            q = sell_quantities(
                MaxSell(500),
                InventoryPosition(quantity=1000, last_synced_at=synced_at),
                ReservationTotals(),
                [FulfilledTrade(quantity=500, updated_at=SYNC)],
                synced_at,
            )
            assert q.fulfilled_quantity == 500
            assert q.remaining_quantity == 0

    def test_no_limit_only_counts_trades_after_last_sync(self) -> None:
        fulfilled = [
            FulfilledTrade(quantity=40, updated_at=BEFORE),
            FulfilledTrade(quantity=25, updated_at=AFTER),
        ]
        assert counted_fulfilled_quantity(NoLimit(), fulfilled, SYNC) == 25
