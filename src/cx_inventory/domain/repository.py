# src/cx_inventory/domain/repository.py
"""Repository Protocol for the synced inventory read model.

The rows are written by the external inventory sync job; this side only
reads them.
"""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.cx_inventory.domain.models import InventoryPosition, PositionKey

LocationKey = tuple[int, str]  # (user_id, location_id)


class InventoryRepositoryProtocol(Protocol):
    async def get_positions(
        self, db: AsyncSession, user_ids: list[int]
    ) -> dict[PositionKey, InventoryPosition]: ...

    async def get_location_sync_times(
        self, db: AsyncSession, user_ids: list[int]
    ) -> dict[LocationKey, datetime]: ...
