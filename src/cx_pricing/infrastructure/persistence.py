# src/cx_pricing/infrastructure/persistence.py
"""PriceRepository — raw SQL persistence for price_lists / prices / price_adjustments."""

from decimal import Decimal
from typing import Any

from sqlalchemy import bindparam, text
from sqlalchemy.ext.asyncio import AsyncSession

from src.cx_common.datetime_utils import ensure_utc
from src.cx_pricing.domain.models import PriceAdjustment, PriceList

# ---------------------------------------------------------------------------
# SQL statements
# ---------------------------------------------------------------------------

_GET_PRICE_LIST_SQL = text("""
    SELECT code, name, currency, default_location_id, is_active
    FROM price_lists WHERE code = :code
""")

_GET_BASE_PRICES_SQL = text("""
    SELECT location_id, price
    FROM prices
    WHERE price_list_code = :price_list_code
      AND commodity_ticker = :commodity_ticker
      AND location_id IN :location_ids
""").bindparams(bindparam("location_ids", expanding=True))

_ADJUSTMENT_COLUMNS = """
    id, price_list_code, commodity_ticker, location_id, currency,
    adjustment_type, adjustment_value, priority, description, is_active,
    effective_from, effective_until, created_by_user_id, created_at, updated_at
"""

# Scope prefilter only; the effective window and currency are checked in the domain.
_SCOPED_ADJUSTMENTS_SQL = text(f"""
    SELECT {_ADJUSTMENT_COLUMNS}
    FROM price_adjustments
    WHERE is_active = TRUE
      AND (price_list_code IS NULL OR price_list_code = :price_list_code)
      AND (commodity_ticker IS NULL OR commodity_ticker = :commodity_ticker)
      AND (location_id IS NULL OR location_id IN :location_ids)
    ORDER BY priority ASC, id ASC
""").bindparams(bindparam("location_ids", expanding=True))

_LIST_ADJUSTMENTS_SQL = text(f"""
    SELECT {_ADJUSTMENT_COLUMNS}
    FROM price_adjustments
    WHERE (CAST(:price_list_code AS TEXT) IS NULL OR price_list_code = :price_list_code)
      AND (CAST(:commodity_ticker AS TEXT) IS NULL OR commodity_ticker = :commodity_ticker)
      AND (:active_only = FALSE OR is_active = TRUE)
    ORDER BY priority ASC, id ASC
""")

_GET_ADJUSTMENT_SQL = text(f"""
    SELECT {_ADJUSTMENT_COLUMNS}
    FROM price_adjustments WHERE id = :id
""")

_INSERT_ADJUSTMENT_SQL = text(f"""
    INSERT INTO price_adjustments (price_list_code, commodity_ticker, location_id,
        currency, adjustment_type, adjustment_value, priority, description,
        is_active, effective_from, effective_until, created_by_user_id)
    VALUES (:price_list_code, :commodity_ticker, :location_id,
        :currency, :adjustment_type, :adjustment_value, :priority, :description,
        :is_active, :effective_from, :effective_until, :created_by_user_id)
    RETURNING {_ADJUSTMENT_COLUMNS}
""")

_UPDATE_ADJUSTMENT_SQL = text(f"""
    UPDATE price_adjustments
    SET price_list_code = :price_list_code, commodity_ticker = :commodity_ticker,
        location_id = :location_id, currency = :currency,
        adjustment_type = :adjustment_type, adjustment_value = :adjustment_value,
        priority = :priority, description = :description, is_active = :is_active,
        effective_from = :effective_from, effective_until = :effective_until,
        updated_at = NOW()
    WHERE id = :id
    RETURNING {_ADJUSTMENT_COLUMNS}
""")

_DELETE_ADJUSTMENT_SQL = text("""
    DELETE FROM price_adjustments WHERE id = :id RETURNING id
""")


# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_price_list(row: Any) -> PriceList:
    return PriceList(
        code=row.code,
        name=row.name,
        currency=row.currency,
        default_location_id=row.default_location_id,
        is_active=row.is_active,
    )


def _row_to_adjustment(row: Any) -> PriceAdjustment:
    return PriceAdjustment(
        id=row.id,
        price_list_code=row.price_list_code,
        commodity_ticker=row.commodity_ticker,
        location_id=row.location_id,
        currency=row.currency,
        adjustment_type=row.adjustment_type,
        adjustment_value=Decimal(str(row.adjustment_value)),
        priority=row.priority,
        description=row.description,
        is_active=row.is_active,
        effective_from=ensure_utc(row.effective_from),
        effective_until=ensure_utc(row.effective_until),
        created_by_user_id=row.created_by_user_id,
        created_at=ensure_utc(row.created_at),
        updated_at=ensure_utc(row.updated_at),
    )


def _adjustment_params(adj: PriceAdjustment) -> dict[str, Any]:
    return {
        "price_list_code": adj.price_list_code,
        "commodity_ticker": adj.commodity_ticker,
        "location_id": adj.location_id,
        "currency": adj.currency,
        "adjustment_type": adj.adjustment_type,
        "adjustment_value": adj.adjustment_value,
        "priority": adj.priority,
        "description": adj.description,
        "is_active": adj.is_active,
        "effective_from": adj.effective_from,
        "effective_until": adj.effective_until,
    }


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class PriceRepository:
    async def get_price_list(self, db: AsyncSession, code: str) -> PriceList | None:
        result = await db.execute(_GET_PRICE_LIST_SQL, {"code": code})
        row = result.fetchone()
        return _row_to_price_list(row) if row is not None else None

    async def get_base_prices(
        self, db: AsyncSession, price_list_code: str, commodity_ticker: str, location_ids: list[str]
    ) -> dict[str, Decimal]:
        if not location_ids:
            return {}
        result = await db.execute(
            _GET_BASE_PRICES_SQL,
            {
                "price_list_code": price_list_code,
                "commodity_ticker": commodity_ticker,
                "location_ids": location_ids,
            },
        )
        return {row.location_id: Decimal(str(row.price)) for row in result.fetchall()}

    async def list_scoped_adjustments(
        self, db: AsyncSession, price_list_code: str, commodity_ticker: str, location_ids: list[str]
    ) -> list[PriceAdjustment]:
        if not location_ids:
            return []
        result = await db.execute(
            _SCOPED_ADJUSTMENTS_SQL,
            {
                "price_list_code": price_list_code,
                "commodity_ticker": commodity_ticker,
                "location_ids": location_ids,
            },
        )
        return [_row_to_adjustment(r) for r in result.fetchall()]

    async def list_adjustments(
        self,
        db: AsyncSession,
        price_list_code: str | None,
        commodity_ticker: str | None,
        active_only: bool,
    ) -> list[PriceAdjustment]:
        result = await db.execute(
            _LIST_ADJUSTMENTS_SQL,
            {
                "price_list_code": price_list_code,
                "commodity_ticker": commodity_ticker,
                "active_only": active_only,
            },
        )
        return [_row_to_adjustment(r) for r in result.fetchall()]

    async def get_adjustment(self, db: AsyncSession, adjustment_id: int) -> PriceAdjustment | None:
        result = await db.execute(_GET_ADJUSTMENT_SQL, {"id": adjustment_id})
        row = result.fetchone()
        return _row_to_adjustment(row) if row is not None else None

    async def insert_adjustment(self, db: AsyncSession, adj: PriceAdjustment) -> PriceAdjustment:
        params = _adjustment_params(adj)
        params["created_by_user_id"] = adj.created_by_user_id
        result = await db.execute(_INSERT_ADJUSTMENT_SQL, params)
        return _row_to_adjustment(result.fetchone())

    async def update_adjustment(self, db: AsyncSession, adj: PriceAdjustment) -> PriceAdjustment:
        params = _adjustment_params(adj)
        params["id"] = adj.id
        result = await db.execute(_UPDATE_ADJUSTMENT_SQL, params)
        return _row_to_adjustment(result.fetchone())

    async def delete_adjustment(self, db: AsyncSession, adjustment_id: int) -> bool:
        result = await db.execute(_DELETE_ADJUSTMENT_SQL, {"id": adjustment_id})
        return result.fetchone() is not None
