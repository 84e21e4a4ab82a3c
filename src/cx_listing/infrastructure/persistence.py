# src/cx_listing/infrastructure/persistence.py
"""ListingRepository — raw SQL persistence for sell_listings / buy_requests.

Both tables share their shape apart from the trailing columns
(limit_mode/limit_quantity for sells, quantity for buys), so the statement
set is built once per table.
"""

from dataclasses import dataclass
from typing import Any

from sqlalchemy import TextClause, bindparam, text
from sqlalchemy.ext.asyncio import AsyncSession

from src.cx_common.datetime_utils import ensure_utc
from src.cx_common.enums import ListingKind
from src.cx_inventory.domain.models import limit_policy_from_columns
from src.cx_listing.domain.models import BuyRequest, Listing, ListingKey, SellListing
from src.cx_pricing.domain.models import pricing_from_columns, pricing_to_columns

# ---------------------------------------------------------------------------
# SQL statements
# ---------------------------------------------------------------------------

_COMMON_COLUMNS = """
    id, user_id, commodity_ticker, location_id, currency, order_type,
    price, price_list_code, created_at, updated_at
"""


@dataclass(frozen=True)
class _Statements:
    list_owned: TextClause
    get: TextClause
    get_for_update: TextClause
    get_many: TextClause
    exists_with_key: TextClause
    insert: TextClause
    update: TextClause
    delete: TextClause
    list_market: TextClause


def _build_statements(table: str, extra_columns: list[str]) -> _Statements:
    columns = f"{_COMMON_COLUMNS}, {', '.join(extra_columns)}"
    extra_values = ", ".join(f":{c}" for c in extra_columns)
    extra_set = ", ".join(f"{c} = :{c}" for c in extra_columns)
    owner_scope = "(CAST(:owner_user_id AS BIGINT) IS NULL OR user_id = :owner_user_id)"
    return _Statements(
        list_owned=text(f"""
            SELECT {columns} FROM {table}
            WHERE user_id = :owner_user_id
            ORDER BY commodity_ticker ASC, location_id ASC
        """),
        get=text(f"""
            SELECT {columns} FROM {table}
            WHERE id = :id AND {owner_scope}
        """),
        get_for_update=text(f"""
            SELECT {columns} FROM {table}
            WHERE id = :id AND {owner_scope}
            FOR UPDATE
        """),
        get_many=text(f"""
            SELECT {columns} FROM {table} WHERE id IN :ids
        """).bindparams(bindparam("ids", expanding=True)),
        exists_with_key=text(f"""
            SELECT 1 FROM {table}
            WHERE user_id = :owner_user_id
              AND commodity_ticker = :commodity_ticker
              AND location_id = :location_id
              AND order_type = :order_type
              AND currency = :currency
              AND (CAST(:exclude_id AS BIGINT) IS NULL OR id <> :exclude_id)
            LIMIT 1
        """),
        insert=text(f"""
            INSERT INTO {table} (user_id, commodity_ticker, location_id, currency,
                order_type, price, price_list_code, {', '.join(extra_columns)})
            VALUES (:owner_user_id, :commodity_ticker, :location_id, :currency,
                :order_type, :price, :price_list_code, {extra_values})
            RETURNING {columns}
        """),
        update=text(f"""
            UPDATE {table}
            SET currency = :currency, order_type = :order_type, price = :price,
                price_list_code = :price_list_code, {extra_set}, updated_at = NOW()
            WHERE id = :id
            RETURNING {columns}
        """),
        delete=text(f"""
            DELETE FROM {table} WHERE id = :id AND user_id = :owner_user_id RETURNING id
        """),
        list_market=text(f"""
            SELECT {columns} FROM {table}
            WHERE (CAST(:commodity_ticker AS TEXT) IS NULL OR commodity_ticker = :commodity_ticker)
              AND (CAST(:location_id AS TEXT) IS NULL OR location_id = :location_id)
              AND (CAST(:exclude_owner_user_id AS BIGINT) IS NULL
                   OR user_id <> :exclude_owner_user_id)
            ORDER BY updated_at DESC, id DESC
        """),
    )


_STATEMENTS: dict[ListingKind, _Statements] = {
    ListingKind.SELL: _build_statements("sell_listings", ["limit_mode", "limit_quantity"]),
    ListingKind.BUY: _build_statements("buy_requests", ["quantity"]),
}

_COMMODITY_EXISTS_SQL = text("SELECT 1 FROM commodities WHERE ticker = :ticker")
_LOCATION_EXISTS_SQL = text("SELECT 1 FROM locations WHERE id = :location_id")


# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_sell_listing(row: Any) -> SellListing:
    return SellListing(
        id=row.id,
        owner_user_id=row.user_id,
        commodity_ticker=row.commodity_ticker,
        location_id=row.location_id,
        currency=row.currency,
        order_type=row.order_type,
        pricing=pricing_from_columns(row.price, row.price_list_code),
        limit_policy=limit_policy_from_columns(row.limit_mode, row.limit_quantity),
        created_at=ensure_utc(row.created_at),
        updated_at=ensure_utc(row.updated_at),
    )


def _row_to_buy_request(row: Any) -> BuyRequest:
    return BuyRequest(
        id=row.id,
        owner_user_id=row.user_id,
        commodity_ticker=row.commodity_ticker,
        location_id=row.location_id,
        currency=row.currency,
        order_type=row.order_type,
        pricing=pricing_from_columns(row.price, row.price_list_code),
        quantity=row.quantity,
        created_at=ensure_utc(row.created_at),
        updated_at=ensure_utc(row.updated_at),
    )


_ROW_MAPPERS = {
    ListingKind.SELL: _row_to_sell_listing,
    ListingKind.BUY: _row_to_buy_request,
}


def _listing_params(listing: Listing) -> dict[str, Any]:
    price, price_list_code = pricing_to_columns(listing.pricing)
    params: dict[str, Any] = {
        "owner_user_id": listing.owner_user_id,
        "commodity_ticker": listing.commodity_ticker,
        "location_id": listing.location_id,
        "currency": listing.currency,
        "order_type": listing.order_type,
        "price": price,
        "price_list_code": price_list_code,
    }
    if isinstance(listing, SellListing):
        params["limit_mode"] = listing.limit_policy.mode.value
        params["limit_quantity"] = listing.limit_policy.limit_quantity
    else:
        params["quantity"] = listing.quantity
    return params


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------


class ListingRepository:
    async def list_owned(
        self, db: AsyncSession, kind: ListingKind, owner_user_id: int
    ) -> list[Listing]:
        result = await db.execute(
            _STATEMENTS[kind].list_owned, {"owner_user_id": owner_user_id}
        )
        return [_ROW_MAPPERS[kind](r) for r in result.fetchall()]

    async def get_listing(
        self,
        db: AsyncSession,
        kind: ListingKind,
        listing_id: int,
        owner_user_id: int | None = None,
        for_update: bool = False,
    ) -> Listing | None:
        stmts = _STATEMENTS[kind]
        result = await db.execute(
            stmts.get_for_update if for_update else stmts.get,
            {"id": listing_id, "owner_user_id": owner_user_id},
        )
        row = result.fetchone()
        return _ROW_MAPPERS[kind](row) if row is not None else None

    async def get_listings_by_ids(
        self, db: AsyncSession, kind: ListingKind, listing_ids: list[int]
    ) -> dict[int, Listing]:
        if not listing_ids:
            return {}
        result = await db.execute(_STATEMENTS[kind].get_many, {"ids": listing_ids})
        return {r.id: _ROW_MAPPERS[kind](r) for r in result.fetchall()}

    async def exists_with_key(
        self, db: AsyncSession, kind: ListingKind, key: ListingKey, exclude_id: int | None = None
    ) -> bool:
        result = await db.execute(
            _STATEMENTS[kind].exists_with_key,
            {
                "owner_user_id": key.owner_user_id,
                "commodity_ticker": key.commodity_ticker,
                "location_id": key.location_id,
                "order_type": key.order_type,
                "currency": key.currency,
                "exclude_id": exclude_id,
            },
        )
        return result.fetchone() is not None

    async def insert_listing(self, db: AsyncSession, listing: Listing) -> Listing:
        result = await db.execute(_STATEMENTS[listing.kind].insert, _listing_params(listing))
        return _ROW_MAPPERS[listing.kind](result.fetchone())

    async def update_listing(self, db: AsyncSession, listing: Listing) -> Listing:
        params = _listing_params(listing)
        params["id"] = listing.id
        result = await db.execute(_STATEMENTS[listing.kind].update, params)
        return _ROW_MAPPERS[listing.kind](result.fetchone())

    async def delete_listing(
        self, db: AsyncSession, kind: ListingKind, listing_id: int, owner_user_id: int
    ) -> bool:
        result = await db.execute(
            _STATEMENTS[kind].delete, {"id": listing_id, "owner_user_id": owner_user_id}
        )
        return result.fetchone() is not None

    async def list_market(
        self,
        db: AsyncSession,
        kind: ListingKind,
        commodity_ticker: str | None,
        location_id: str | None,
        exclude_owner_user_id: int | None,
    ) -> list[Listing]:
        result = await db.execute(
            _STATEMENTS[kind].list_market,
            {
                "commodity_ticker": commodity_ticker,
                "location_id": location_id,
                "exclude_owner_user_id": exclude_owner_user_id,
            },
        )
        return [_ROW_MAPPERS[kind](r) for r in result.fetchall()]


class ReferenceDataRepository:
    """Existence checks against the commodities / locations catalogues."""

    async def commodity_exists(self, db: AsyncSession, ticker: str) -> bool:
        result = await db.execute(_COMMODITY_EXISTS_SQL, {"ticker": ticker})
        return result.fetchone() is not None

    async def location_exists(self, db: AsyncSession, location_id: str) -> bool:
        result = await db.execute(_LOCATION_EXISTS_SQL, {"location_id": location_id})
        return result.fetchone() is not None
