"""Inventory domain models — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime

from src.cx_common.enums import LimitMode
from src.cx_common.errors import InvalidLimitPolicyError


@dataclass(frozen=True)
class NoLimit:
    """List the whole synced quantity."""

    mode = LimitMode.NONE
    limit_quantity: None = None

    @property
    def is_inventory_backed(self) -> bool:
        return True


@dataclass(frozen=True)
class MaxSell:
    """Never sell more than `limit_quantity` in total."""

    limit_quantity: int | None
    mode = LimitMode.MAX_SELL

    @property
    def is_inventory_backed(self) -> bool:
        # The cap, not the synced stock, bounds what is sold
        return False


@dataclass(frozen=True)
class Reserve:
    """Keep `limit_quantity` back; only the excess is for sale."""

    limit_quantity: int | None
    mode = LimitMode.RESERVE

    @property
    def is_inventory_backed(self) -> bool:
        return True


LimitPolicy = NoLimit | MaxSell | Reserve


def limit_policy_from_columns(mode: str | LimitMode, limit_quantity: int | None) -> LimitPolicy:
    """Build a LimitPolicy from the (limit_mode, limit_quantity) column pair."""
    if limit_quantity is not None and limit_quantity < 0:
        raise InvalidLimitPolicyError(f"limit_quantity must be >= 0, got {limit_quantity}")
    limit_mode = LimitMode(mode)
    if limit_mode == LimitMode.MAX_SELL:
        return MaxSell(limit_quantity)
    if limit_mode == LimitMode.RESERVE:
        return Reserve(limit_quantity)
    return NoLimit()


@dataclass
class InventorySnapshot:
    """One synced item row: a commodity quantity in one storage at a location."""

    user_id: int
    commodity_ticker: str
    location_id: str
    quantity: int
    last_synced_at: datetime
    fio_uploaded_at: datetime | None


@dataclass
class InventoryPosition:
    """All of a user's storages at one location, summed for one commodity."""

    quantity: int = 0
    last_synced_at: datetime | None = None
    fio_uploaded_at: datetime | None = None


PositionKey = tuple[int, str, str]  # (user_id, commodity_ticker, location_id)


def _later(a: datetime | None, b: datetime | None) -> datetime | None:
    if a is None:
        return b
    if b is None:
        return a
    return max(a, b)


def aggregate_snapshots(rows: list[InventorySnapshot]) -> dict[PositionKey, InventoryPosition]:
    positions: dict[PositionKey, InventoryPosition] = {}
    for row in rows:
        key = (row.user_id, row.commodity_ticker, row.location_id)
        pos = positions.setdefault(key, InventoryPosition())
        pos.quantity += row.quantity
        pos.last_synced_at = _later(pos.last_synced_at, row.last_synced_at)
        pos.fio_uploaded_at = _later(pos.fio_uploaded_at, row.fio_uploaded_at)
    return positions


@dataclass(frozen=True)
class FulfilledTrade:
    """A reservation marked fulfilled; updated_at is when that happened."""

    quantity: int
    updated_at: datetime
