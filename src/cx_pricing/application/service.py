"""PriceService — price resolution and price-adjustment management.

Resolution is read-only. Adjustment writes need the prices.manage
permission and run in their own transaction (commit/rollback here).
"""

import dataclasses
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.cx_common.datetime_utils import utc_now
from src.cx_common.errors import (
    InvalidAdjustmentWindowError,
    PermissionDeniedError,
    PriceAdjustmentNotFoundError,
    UnknownPriceListError,
)
from src.cx_gateway.permissions.service import (
    PRICES_MANAGE,
    PermissionService,
    get_permission_service,
)
from src.cx_pricing.application.schemas import (
    EffectivePriceResponse,
    PriceAdjustmentCreateRequest,
    PriceAdjustmentListResponse,
    PriceAdjustmentResponse,
    PriceAdjustmentUpdateRequest,
)
from src.cx_pricing.domain.models import (
    DynamicPrice,
    PriceAdjustment,
    PriceBook,
    PriceList,
    Pricing,
    ResolvedPrice,
)
from src.cx_pricing.domain.repository import PriceRepositoryProtocol
from src.cx_pricing.domain.resolver import PricedItem, resolve_price
from src.cx_pricing.infrastructure.persistence import PriceRepository

logger = logging.getLogger(__name__)

_BookKey = tuple[str, str, str]  # (price_list_code, commodity_ticker, location_id)


@dataclass(frozen=True)
class PriceQuery:
    """Ad-hoc dynamic price lookup, shaped like a listing."""

    pricing: Pricing
    currency: str
    commodity_ticker: str
    location_id: str


def _enum_value(v: Any) -> Any:
    return getattr(v, "value", v)


class PriceService:
    def __init__(
        self,
        repo: PriceRepositoryProtocol | None = None,
        permissions: PermissionService | None = None,
    ) -> None:
        self._repo: PriceRepositoryProtocol = repo or PriceRepository()
        self._permissions = permissions or get_permission_service()

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    async def load_price_book(
        self, db: AsyncSession, price_list_code: str, commodity_ticker: str, location_id: str
    ) -> PriceBook | None:
        price_list = await self._repo.get_price_list(db, price_list_code)
        if price_list is None:
            return None
        locations = [location_id]
        if price_list.default_location_id and price_list.default_location_id != location_id:
            locations.append(price_list.default_location_id)
        base_prices = await self._repo.get_base_prices(
            db, price_list.code, commodity_ticker, locations
        )
        adjustments = (
            await self._repo.list_scoped_adjustments(
                db, price_list.code, commodity_ticker, locations
            )
            if base_prices
            else []
        )
        return PriceBook(
            price_list=price_list,
            commodity_ticker=commodity_ticker,
            base_prices=base_prices,
            adjustments=adjustments,
        )

    async def resolve_for_listing(
        self, db: AsyncSession, item: PricedItem, now: datetime | None = None
    ) -> ResolvedPrice | None:
        return (await self.resolve_many(db, [item], now))[0]

    async def resolve_many(
        self, db: AsyncSession, items: list[PricedItem], now: datetime | None = None
    ) -> list[ResolvedPrice | None]:
        """Resolve several items, loading each distinct price book once."""
        now = now or utc_now()
        books: dict[_BookKey, PriceBook | None] = {}
        resolved: list[ResolvedPrice | None] = []
        for item in items:
            book = None
            if isinstance(item.pricing, DynamicPrice):
                key = (item.pricing.price_list_code, item.commodity_ticker, item.location_id)
                if key not in books:
                    books[key] = await self.load_price_book(db, *key)
                book = books[key]
            resolved.append(resolve_price(item, book, now))
        return resolved

    async def get_effective_price(
        self,
        db: AsyncSession,
        price_list_code: str,
        commodity_ticker: str,
        location_id: str,
        now: datetime | None = None,
    ) -> EffectivePriceResponse:
        price_list = await self.require_price_list(db, price_list_code)
        query = PriceQuery(
            pricing=DynamicPrice(price_list.code),
            currency=price_list.currency,
            commodity_ticker=commodity_ticker,
            location_id=location_id,
        )
        resolved = await self.resolve_for_listing(db, query, now)
        return EffectivePriceResponse.from_resolved(
            price_list.code, commodity_ticker, location_id, resolved
        )

    async def require_price_list(self, db: AsyncSession, price_list_code: str) -> PriceList:
        price_list = await self._repo.get_price_list(db, price_list_code.upper())
        if price_list is None:
            raise UnknownPriceListError(price_list_code)
        return price_list

    # ------------------------------------------------------------------
    # Adjustment management
    # ------------------------------------------------------------------

    async def _require_manage(self, db: AsyncSession, roles: tuple[str, ...]) -> None:
        if not await self._permissions.has_permission(db, roles, PRICES_MANAGE):
            raise PermissionDeniedError(f"Missing permission: {PRICES_MANAGE}")

    async def list_adjustments(
        self,
        db: AsyncSession,
        roles: tuple[str, ...],
        price_list_code: str | None = None,
        commodity_ticker: str | None = None,
        active_only: bool = False,
    ) -> PriceAdjustmentListResponse:
        await self._require_manage(db, roles)
        items = await self._repo.list_adjustments(
            db,
            price_list_code.upper() if price_list_code else None,
            commodity_ticker.upper() if commodity_ticker else None,
            active_only,
        )
        return PriceAdjustmentListResponse(
            items=[PriceAdjustmentResponse.from_domain(a) for a in items]
        )

    async def get_adjustment(
        self, db: AsyncSession, roles: tuple[str, ...], adjustment_id: int
    ) -> PriceAdjustmentResponse:
        await self._require_manage(db, roles)
        adj = await self._repo.get_adjustment(db, adjustment_id)
        if adj is None:
            raise PriceAdjustmentNotFoundError(adjustment_id)
        return PriceAdjustmentResponse.from_domain(adj)

    async def create_adjustment(
        self,
        db: AsyncSession,
        user_id: int,
        roles: tuple[str, ...],
        req: PriceAdjustmentCreateRequest,
    ) -> PriceAdjustmentResponse:
        await self._require_manage(db, roles)
        if req.price_list_code is not None:
            await self.require_price_list(db, req.price_list_code)
        draft = PriceAdjustment(
            id=0,
            price_list_code=req.price_list_code,
            commodity_ticker=req.commodity_ticker,
            location_id=req.location_id,
            currency=_enum_value(req.currency),
            adjustment_type=req.adjustment_type,
            adjustment_value=Decimal(req.adjustment_value),
            priority=req.priority,
            description=req.description,
            is_active=req.is_active,
            effective_from=req.effective_from,
            effective_until=req.effective_until,
            created_by_user_id=user_id,
        )
        try:
            adj = await self._repo.insert_adjustment(db, draft)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Price adjustment %d created by user %d", adj.id, user_id)
        return PriceAdjustmentResponse.from_domain(adj)

    async def update_adjustment(
        self,
        db: AsyncSession,
        user_id: int,
        roles: tuple[str, ...],
        adjustment_id: int,
        req: PriceAdjustmentUpdateRequest,
    ) -> PriceAdjustmentResponse:
        await self._require_manage(db, roles)
        try:
            current = await self._repo.get_adjustment(db, adjustment_id)
            if current is None:
                raise PriceAdjustmentNotFoundError(adjustment_id)
            changes = {k: _enum_value(v) for k, v in req.model_dump(exclude_unset=True).items()}
            if changes.get("price_list_code"):
                await self.require_price_list(db, changes["price_list_code"])
            merged = dataclasses.replace(current, **changes)
            if (
                merged.effective_from is not None
                and merged.effective_until is not None
                and merged.effective_until <= merged.effective_from
            ):
                raise InvalidAdjustmentWindowError()
            adj = await self._repo.update_adjustment(db, merged)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Price adjustment %d updated by user %d", adjustment_id, user_id)
        return PriceAdjustmentResponse.from_domain(adj)

    async def delete_adjustment(
        self, db: AsyncSession, user_id: int, roles: tuple[str, ...], adjustment_id: int
    ) -> None:
        await self._require_manage(db, roles)
        try:
            deleted = await self._repo.delete_adjustment(db, adjustment_id)
            if not deleted:
                raise PriceAdjustmentNotFoundError(adjustment_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Price adjustment %d deleted by user %d", adjustment_id, user_id)
