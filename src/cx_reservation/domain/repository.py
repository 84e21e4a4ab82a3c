# src/cx_reservation/domain/repository.py
"""Repository Protocol for reservations."""

from datetime import datetime
from typing import Literal, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.cx_common.enums import ListingKind
from src.cx_inventory.domain.availability import ReservationTotals
from src.cx_inventory.domain.models import FulfilledTrade
from src.cx_reservation.domain.models import Reservation, ReservationDetail, TargetRef

RoleFilter = Literal["owner", "counterparty", "all"]


class ReservationRepositoryProtocol(Protocol):
    async def insert_reservation(
        self,
        db: AsyncSession,
        target: TargetRef,
        counterparty_user_id: int,
        quantity: int,
        notes: str | None,
        expires_at: datetime | None,
    ) -> Reservation: ...

    async def get_reservation(
        self, db: AsyncSession, reservation_id: int, for_update: bool = False
    ) -> Reservation | None: ...

    async def update_status(
        self,
        db: AsyncSession,
        reservation_id: int,
        expected_version: int,
        status: str,
        notes: str | None,
        expires_at: datetime | None = None,
    ) -> Reservation | None:
        """None when the version no longer matches. Null notes / expires_at keep the stored value."""
        ...

    async def get_active_totals(
        self, db: AsyncSession, kind: ListingKind, listing_ids: list[int], now: datetime
    ) -> dict[int, ReservationTotals]: ...

    async def get_fulfilled_trades(
        self, db: AsyncSession, kind: ListingKind, listing_ids: list[int]
    ) -> dict[int, list[FulfilledTrade]]: ...

    async def cancel_active_for_listing(
        self, db: AsyncSession, kind: ListingKind, listing_id: int
    ) -> int: ...

    async def list_for_user(
        self,
        db: AsyncSession,
        user_id: int,
        role: RoleFilter,
        statuses: list[str] | None,
    ) -> list[ReservationDetail]: ...

    async def get_detail(self, db: AsyncSession, reservation_id: int) -> ReservationDetail | None: ...

    async def expire_stale(self, db: AsyncSession, now: datetime) -> int: ...
