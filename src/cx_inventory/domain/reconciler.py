"""Sync Reconciler.

A reservation marked fulfilled locally may or may not already show up as
depleted stock in the next inventory sync, depending on which happened
first. For inventory-backed listings (NoLimit/Reserve) a fulfilled trade
is subtracted only until a sync newer than the fulfilment lands; after
that the synced quantity already reflects it. MaxSell listings are capped
by the owner's number, not by synced stock, so every fulfilled trade
counts against the cap.
"""

from datetime import datetime

from src.cx_inventory.domain.models import FulfilledTrade, LimitPolicy


def counts_against_listing(
    policy: LimitPolicy, trade: FulfilledTrade, location_synced_at: datetime | None
) -> bool:
    if not policy.is_inventory_backed:
        return True
    if location_synced_at is None:
        return True
    return trade.updated_at > location_synced_at


def counted_fulfilled_quantity(
    policy: LimitPolicy,
    fulfilled: list[FulfilledTrade],
    location_synced_at: datetime | None,
) -> int:
    """Sum of fulfilled quantities still to subtract from the synced quantity."""
    return sum(
        t.quantity
        for t in fulfilled
        if counts_against_listing(policy, t, location_synced_at)
    )
