# src/cx_listing/domain/repository.py
"""Repository Protocol for sell listings, buy requests and reference data.

Every method takes the listing kind explicitly; owner-scoped reads pass
owner_user_id so that other users' listings behave as missing.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.cx_common.enums import ListingKind
from src.cx_listing.domain.models import Listing, ListingKey


class ListingRepositoryProtocol(Protocol):
    async def list_owned(
        self, db: AsyncSession, kind: ListingKind, owner_user_id: int
    ) -> list[Listing]: ...

    async def get_listing(
        self,
        db: AsyncSession,
        kind: ListingKind,
        listing_id: int,
        owner_user_id: int | None = None,
        for_update: bool = False,
    ) -> Listing | None: ...

    async def get_listings_by_ids(
        self, db: AsyncSession, kind: ListingKind, listing_ids: list[int]
    ) -> dict[int, Listing]: ...

    async def exists_with_key(
        self, db: AsyncSession, kind: ListingKind, key: ListingKey, exclude_id: int | None = None
    ) -> bool: ...

    async def insert_listing(self, db: AsyncSession, listing: Listing) -> Listing: ...

    async def update_listing(self, db: AsyncSession, listing: Listing) -> Listing: ...

    async def delete_listing(
        self, db: AsyncSession, kind: ListingKind, listing_id: int, owner_user_id: int
    ) -> bool: ...

    async def list_market(
        self,
        db: AsyncSession,
        kind: ListingKind,
        commodity_ticker: str | None,
        location_id: str | None,
        exclude_owner_user_id: int | None,
    ) -> list[Listing]: ...


class ReferenceDataRepositoryProtocol(Protocol):
    async def commodity_exists(self, db: AsyncSession, ticker: str) -> bool: ...

    async def location_exists(self, db: AsyncSession, location_id: str) -> bool: ...
