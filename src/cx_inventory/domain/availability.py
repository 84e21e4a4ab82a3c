"""Availability Calculator.

Turns a synced inventory quantity and the owner's limit policy into the
quantity offered for trade, then subtracts what reservations already hold.

    synced ──limit policy──▶ available ──minus reserved/fulfilled──▶ remaining
"""

from dataclasses import dataclass
from datetime import datetime

from src.cx_inventory.domain.models import (
    FulfilledTrade,
    InventoryPosition,
    LimitPolicy,
    MaxSell,
    NoLimit,
    Reserve,
)
from src.cx_inventory.domain.reconciler import counted_fulfilled_quantity


def available_quantity(synced: int, policy: LimitPolicy) -> int:
    """Quantity offered for trade under `policy`.

    NoLimit → synced
    MaxSell → min(synced, limit)
    Reserve → max(0, synced - limit)
    A missing limit counts as 0.
    """
    if isinstance(policy, MaxSell):
        return min(synced, policy.limit_quantity or 0)
    if isinstance(policy, Reserve):
        return max(0, synced - (policy.limit_quantity or 0))
    if isinstance(policy, NoLimit):
        return synced
    raise TypeError(f"Unknown limit policy: {policy!r}")


def remaining_quantity(available: int, active_reserved: int, counted_fulfilled: int) -> int:
    """What can still be reserved; never negative."""
    return max(0, available - active_reserved - counted_fulfilled)


@dataclass(frozen=True)
class ReservationTotals:
    """pending/confirmed (unexpired) reservations against one listing."""

    active_count: int = 0
    active_quantity: int = 0


@dataclass(frozen=True)
class SellQuantities:
    synced_quantity: int
    available_quantity: int
    active_reservation_count: int
    reserved_quantity: int
    fulfilled_quantity: int
    remaining_quantity: int


@dataclass(frozen=True)
class BuyQuantities:
    requested_quantity: int
    active_reservation_count: int
    reserved_quantity: int
    fulfilled_quantity: int
    remaining_quantity: int


def sell_quantities(
    policy: LimitPolicy,
    position: InventoryPosition | None,
    totals: ReservationTotals,
    fulfilled: list[FulfilledTrade],
    location_synced_at: datetime | None,
) -> SellQuantities:
    synced = position.quantity if position else 0
    available = available_quantity(synced, policy)
    fulfilled_qty = counted_fulfilled_quantity(policy, fulfilled, location_synced_at)
    return SellQuantities(
        synced_quantity=synced,
        available_quantity=available,
        active_reservation_count=totals.active_count,
        reserved_quantity=totals.active_quantity,
        fulfilled_quantity=fulfilled_qty,
        remaining_quantity=remaining_quantity(available, totals.active_quantity, fulfilled_qty),
    )


def buy_quantities(
    requested: int, totals: ReservationTotals, fulfilled: list[FulfilledTrade]
) -> BuyQuantities:
    # Buy requests are not inventory-backed: every fulfilled trade counts
    fulfilled_qty = sum(t.quantity for t in fulfilled)
    return BuyQuantities(
        requested_quantity=requested,
        active_reservation_count=totals.active_count,
        reserved_quantity=totals.active_quantity,
        fulfilled_quantity=fulfilled_qty,
        remaining_quantity=remaining_quantity(requested, totals.active_quantity, fulfilled_qty),
    )
