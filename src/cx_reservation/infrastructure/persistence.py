# src/cx_reservation/infrastructure/persistence.py
"""ReservationRepository — raw SQL persistence implementation.

reservations.sell_listing_id / buy_request_id are plain id columns (no FK
cascade): reservations outlive deleted listings as history.
"""

from collections import defaultdict
from datetime import datetime
from typing import Any

from sqlalchemy import TextClause, bindparam, text
from sqlalchemy.ext.asyncio import AsyncSession

from src.cx_common.datetime_utils import ensure_utc
from src.cx_common.enums import ListingKind
from src.cx_inventory.domain.availability import ReservationTotals
from src.cx_inventory.domain.models import FulfilledTrade
from src.cx_pricing.domain.models import pricing_from_columns
from src.cx_reservation.domain.models import (
    Reservation,
    ReservationDetail,
    TargetRef,
    target_from_columns,
)
from src.cx_reservation.domain.repository import RoleFilter

# ---------------------------------------------------------------------------
# SQL statements
# ---------------------------------------------------------------------------

_COLUMNS = """
    id, sell_listing_id, buy_request_id, counterparty_user_id, quantity,
    status, notes, expires_at, version, created_at, updated_at
"""

_TARGET_COLUMN = {
    ListingKind.SELL: "sell_listing_id",
    ListingKind.BUY: "buy_request_id",
}

_INSERT_SQL = text(f"""
    INSERT INTO reservations (sell_listing_id, buy_request_id, counterparty_user_id,
        quantity, status, notes, expires_at)
    VALUES (:sell_listing_id, :buy_request_id, :counterparty_user_id,
        :quantity, 'pending', :notes, :expires_at)
    RETURNING {_COLUMNS}
""")

_GET_SQL = text(f"SELECT {_COLUMNS} FROM reservations WHERE id = :id")

_GET_FOR_UPDATE_SQL = text(f"SELECT {_COLUMNS} FROM reservations WHERE id = :id FOR UPDATE")

_UPDATE_STATUS_SQL = text(f"""
    UPDATE reservations
    SET status = :status, notes = COALESCE(:notes, notes),
        expires_at = COALESCE(:expires_at, expires_at),
        version = version + 1, updated_at = NOW()
    WHERE id = :id AND version = :version
    RETURNING {_COLUMNS}
""")


def _active_totals_sql(column: str) -> TextClause:
    return text(f"""
        SELECT {column} AS listing_id, COUNT(*) AS active_count,
               COALESCE(SUM(quantity), 0) AS active_quantity
        FROM reservations
        WHERE {column} IN :ids
          AND status IN ('pending', 'confirmed')
          AND (expires_at IS NULL OR expires_at > :now)
        GROUP BY {column}
    """).bindparams(bindparam("ids", expanding=True))


def _fulfilled_sql(column: str) -> TextClause:
    return text(f"""
        SELECT {column} AS listing_id, quantity, updated_at
        FROM reservations
        WHERE {column} IN :ids AND status = 'fulfilled'
    """).bindparams(bindparam("ids", expanding=True))


def _cancel_active_sql(column: str) -> TextClause:
    return text(f"""
        UPDATE reservations
        SET status = 'cancelled', version = version + 1, updated_at = NOW()
        WHERE {column} = :listing_id AND status IN ('pending', 'confirmed')
        RETURNING id
    """)


_ACTIVE_TOTALS_SQL = {k: _active_totals_sql(c) for k, c in _TARGET_COLUMN.items()}
_FULFILLED_SQL = {k: _fulfilled_sql(c) for k, c in _TARGET_COLUMN.items()}
_CANCEL_ACTIVE_SQL = {k: _cancel_active_sql(c) for k, c in _TARGET_COLUMN.items()}

_R_COLUMNS = """
    r.id, r.sell_listing_id, r.buy_request_id, r.counterparty_user_id, r.quantity,
    r.status, r.notes, r.expires_at, r.version, r.created_at, r.updated_at,
    l.user_id AS owner_user_id, l.commodity_ticker, l.location_id, l.currency,
    l.order_type, l.price, l.price_list_code
"""

# Inner joins: reservations whose listing was deleted drop out of these views.
_DETAIL_SQL = text(f"""
    SELECT {_R_COLUMNS}
    FROM reservations r JOIN sell_listings l ON l.id = r.sell_listing_id
    WHERE r.id = :id
    UNION ALL
    SELECT {_R_COLUMNS}
    FROM reservations r JOIN buy_requests l ON l.id = r.buy_request_id
    WHERE r.id = :id
""")

_USER_FILTER = """
    ((:as_owner AND l.user_id = :user_id)
     OR (:as_counterparty AND r.counterparty_user_id = :user_id))
    AND (CAST(:statuses_csv AS TEXT) IS NULL
         OR r.status = ANY(string_to_array(CAST(:statuses_csv AS TEXT), ',')))
"""

_LIST_FOR_USER_SQL = text(f"""
    SELECT {_R_COLUMNS}
    FROM reservations r JOIN sell_listings l ON l.id = r.sell_listing_id
    WHERE {_USER_FILTER}
    UNION ALL
    SELECT {_R_COLUMNS}
    FROM reservations r JOIN buy_requests l ON l.id = r.buy_request_id
    WHERE {_USER_FILTER}
    ORDER BY created_at DESC, id DESC
""")

_EXPIRE_STALE_SQL = text("""
    UPDATE reservations
    SET status = 'expired', version = version + 1, updated_at = NOW()
    WHERE status IN ('pending', 'confirmed')
      AND expires_at IS NOT NULL
      AND expires_at <= :now
    RETURNING id
""")


# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_reservation(row: Any) -> Reservation:
    return Reservation(
        id=row.id,
        target=target_from_columns(row.sell_listing_id, row.buy_request_id),
        counterparty_user_id=row.counterparty_user_id,
        quantity=row.quantity,
        status=row.status,
        notes=row.notes,
        expires_at=ensure_utc(row.expires_at),
        version=row.version,
        created_at=ensure_utc(row.created_at),
        updated_at=ensure_utc(row.updated_at),
    )


def _row_to_detail(row: Any) -> ReservationDetail:
    return ReservationDetail(
        reservation=_row_to_reservation(row),
        owner_user_id=row.owner_user_id,
        commodity_ticker=row.commodity_ticker,
        location_id=row.location_id,
        currency=row.currency,
        order_type=row.order_type,
        pricing=pricing_from_columns(row.price, row.price_list_code),
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class ReservationRepository:
    async def insert_reservation(
        self,
        db: AsyncSession,
        target: TargetRef,
        counterparty_user_id: int,
        quantity: int,
        notes: str | None,
        expires_at: datetime | None,
    ) -> Reservation:
        params = {
            "sell_listing_id": None,
            "buy_request_id": None,
            "counterparty_user_id": counterparty_user_id,
            "quantity": quantity,
            "notes": notes,
            "expires_at": expires_at,
        }
        params[_TARGET_COLUMN[target.kind]] = target.listing_id
        result = await db.execute(_INSERT_SQL, params)
        return _row_to_reservation(result.fetchone())

    async def get_reservation(
        self, db: AsyncSession, reservation_id: int, for_update: bool = False
    ) -> Reservation | None:
        result = await db.execute(
            _GET_FOR_UPDATE_SQL if for_update else _GET_SQL, {"id": reservation_id}
        )
        row = result.fetchone()
        return _row_to_reservation(row) if row is not None else None

    async def update_status(
        self,
        db: AsyncSession,
        reservation_id: int,
        expected_version: int,
        status: str,
        notes: str | None,
        expires_at: datetime | None = None,
    ) -> Reservation | None:
        result = await db.execute(
            _UPDATE_STATUS_SQL,
            {
                "id": reservation_id,
                "version": expected_version,
                "status": status,
                "notes": notes,
                "expires_at": expires_at,
            },
        )
        row = result.fetchone()
        return _row_to_reservation(row) if row is not None else None

    async def get_active_totals(
        self, db: AsyncSession, kind: ListingKind, listing_ids: list[int], now: datetime
    ) -> dict[int, ReservationTotals]:
        if not listing_ids:
            return {}
        result = await db.execute(_ACTIVE_TOTALS_SQL[kind], {"ids": listing_ids, "now": now})
        return {
            row.listing_id: ReservationTotals(
                active_count=row.active_count, active_quantity=int(row.active_quantity)
            )
            for row in result.fetchall()
        }

    async def get_fulfilled_trades(
        self, db: AsyncSession, kind: ListingKind, listing_ids: list[int]
    ) -> dict[int, list[FulfilledTrade]]:
        if not listing_ids:
            return {}
        result = await db.execute(_FULFILLED_SQL[kind], {"ids": listing_ids})
        trades: dict[int, list[FulfilledTrade]] = defaultdict(list)
        for row in result.fetchall():
            trades[row.listing_id].append(
                FulfilledTrade(quantity=row.quantity, updated_at=ensure_utc(row.updated_at))  # type: ignore[arg-type]
            )
        return dict(trades)

    async def cancel_active_for_listing(
        self, db: AsyncSession, kind: ListingKind, listing_id: int
    ) -> int:
        result = await db.execute(_CANCEL_ACTIVE_SQL[kind], {"listing_id": listing_id})
        return len(result.fetchall())

    async def list_for_user(
        self,
        db: AsyncSession,
        user_id: int,
        role: RoleFilter,
        statuses: list[str] | None,
    ) -> list[ReservationDetail]:
        result = await db.execute(
            _LIST_FOR_USER_SQL,
            {
                "user_id": user_id,
                "as_owner": role in ("owner", "all"),
                "as_counterparty": role in ("counterparty", "all"),
                "statuses_csv": ",".join(statuses) if statuses else None,
            },
        )
        return [_row_to_detail(r) for r in result.fetchall()]

    async def get_detail(self, db: AsyncSession, reservation_id: int) -> ReservationDetail | None:
        result = await db.execute(_DETAIL_SQL, {"id": reservation_id})
        row = result.fetchone()
        return _row_to_detail(row) if row is not None else None

    async def expire_stale(self, db: AsyncSession, now: datetime) -> int:
        result = await db.execute(_EXPIRE_STALE_SQL, {"now": now})
        return len(result.fetchall())
