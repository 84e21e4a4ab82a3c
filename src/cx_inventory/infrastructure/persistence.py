"""InventoryRepository — concrete implementation of InventoryRepositoryProtocol.

All queries use raw text() SQL (no ORM). Storages without a location
(e.g. ships in flight) never back a listing and are skipped.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import bindparam, text
from sqlalchemy.ext.asyncio import AsyncSession

from src.cx_common.datetime_utils import ensure_utc
from src.cx_inventory.domain.models import (
    InventoryPosition,
    InventorySnapshot,
    PositionKey,
    aggregate_snapshots,
)
from src.cx_inventory.domain.repository import LocationKey

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_SNAPSHOTS_SQL = text("""
    SELECT s.user_id, i.commodity_ticker, s.location_id, i.quantity,
           s.last_synced_at, s.fio_uploaded_at
    FROM inventory_items i
    JOIN inventory_storages s ON s.id = i.storage_pk
    WHERE s.user_id IN :user_ids
      AND s.location_id IS NOT NULL
""").bindparams(bindparam("user_ids", expanding=True))

_LOCATION_SYNC_SQL = text("""
    SELECT user_id, location_id, MAX(last_synced_at) AS last_synced_at
    FROM inventory_storages
    WHERE user_id IN :user_ids
      AND location_id IS NOT NULL
    GROUP BY user_id, location_id
""").bindparams(bindparam("user_ids", expanding=True))


def _row_to_snapshot(row: Any) -> InventorySnapshot:
    return InventorySnapshot(
        user_id=row.user_id,
        commodity_ticker=row.commodity_ticker,
        location_id=row.location_id,
        quantity=row.quantity,
        last_synced_at=ensure_utc(row.last_synced_at),  # type: ignore[arg-type]
        fio_uploaded_at=ensure_utc(row.fio_uploaded_at),
    )


class InventoryRepository:
    """Read-only access to inventory_storages / inventory_items."""

    async def get_positions(
        self, db: AsyncSession, user_ids: list[int]
    ) -> dict[PositionKey, InventoryPosition]:
        if not user_ids:
            return {}
        result = await db.execute(_SNAPSHOTS_SQL, {"user_ids": user_ids})
        return aggregate_snapshots([_row_to_snapshot(r) for r in result.fetchall()])

    async def get_location_sync_times(
        self, db: AsyncSession, user_ids: list[int]
    ) -> dict[LocationKey, datetime]:
        if not user_ids:
            return {}
        result = await db.execute(_LOCATION_SYNC_SQL, {"user_ids": user_ids})
        return {
            (row.user_id, row.location_id): ensure_utc(row.last_synced_at)  # type: ignore[misc]
            for row in result.fetchall()
        }
