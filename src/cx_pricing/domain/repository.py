# src/cx_pricing/domain/repository.py
"""Repository Protocol for price lists, base prices and adjustments."""

from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.cx_pricing.domain.models import PriceAdjustment, PriceList


class PriceRepositoryProtocol(Protocol):
    async def get_price_list(self, db: AsyncSession, code: str) -> PriceList | None: ...

    async def get_base_prices(
        self, db: AsyncSession, price_list_code: str, commodity_ticker: str, location_ids: list[str]
    ) -> dict[str, Decimal]: ...

    async def list_scoped_adjustments(
        self, db: AsyncSession, price_list_code: str, commodity_ticker: str, location_ids: list[str]
    ) -> list[PriceAdjustment]: ...

    async def list_adjustments(
        self, db: AsyncSession, price_list_code: str | None, commodity_ticker: str | None,
        active_only: bool,
    ) -> list[PriceAdjustment]: ...

    async def get_adjustment(self, db: AsyncSession, adjustment_id: int) -> PriceAdjustment | None: ...

    async def insert_adjustment(self, db: AsyncSession, adj: PriceAdjustment) -> PriceAdjustment: ...

    async def update_adjustment(self, db: AsyncSession, adj: PriceAdjustment) -> PriceAdjustment: ...

    async def delete_adjustment(self, db: AsyncSession, adjustment_id: int) -> bool: ...
