"""ListingService — owner-side CRUD for sell listings and buy requests.

Every query is scoped to the acting user, so another user's listing is
reported as not found. Writes run in one transaction each, committed here
and rolled back on any exception. Updates and deletes lock the listing row;
deleting a listing cancels its pending/confirmed reservations in the same
transaction.
"""

import dataclasses
import logging
from decimal import Decimal
from typing import cast

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.cx_common.enums import ListingKind, OrderType
from src.cx_common.errors import (
    DuplicateListingError,
    InvalidQuantityError,
    ListingNotFoundError,
    PermissionDeniedError,
)
from src.cx_gateway.auth.dependencies import CurrentUser
from src.cx_gateway.permissions.service import (
    PermissionService,
    get_permission_service,
    listing_write_permission,
)
from src.cx_inventory.domain.models import limit_policy_from_columns
from src.cx_listing.application.enrichment import ListingEnricher
from src.cx_listing.application.reference import ReferenceDataService
from src.cx_listing.application.schemas import (
    BuyRequestCreateRequest,
    BuyRequestListResponse,
    BuyRequestUpdateRequest,
    BuyRequestView,
    DeleteListingResponse,
    ListingUpdateBase,
    SellListingCreateRequest,
    SellListingListResponse,
    SellListingUpdateRequest,
    SellListingView,
)
from src.cx_listing.domain.models import BuyRequest, Listing, ListingKey, SellListing
from src.cx_listing.domain.repository import ListingRepositoryProtocol
from src.cx_listing.infrastructure.persistence import ListingRepository
from src.cx_pricing.application.service import PriceService
from src.cx_pricing.domain.models import (
    DynamicPrice,
    Pricing,
    pricing_from_columns,
    pricing_to_columns,
)
from src.cx_reservation.domain.repository import ReservationRepositoryProtocol
from src.cx_reservation.infrastructure.persistence import ReservationRepository

logger = logging.getLogger(__name__)

_KEY_CONSTRAINTS = ("uq_sell_listings_key", "uq_buy_requests_key")


def _is_key_violation(exc: IntegrityError) -> bool:
    return any(name in str(exc.orig) for name in _KEY_CONSTRAINTS)


def _duplicate_error(listing: Listing) -> DuplicateListingError:
    key = ListingKey.of(listing)
    return DuplicateListingError(
        listing.kind.value, key.commodity_ticker, key.location_id, key.order_type, key.currency
    )


class ListingService:
    def __init__(
        self,
        repo: ListingRepositoryProtocol | None = None,
        reservation_repo: ReservationRepositoryProtocol | None = None,
        reference: ReferenceDataService | None = None,
        price_service: PriceService | None = None,
        permissions: PermissionService | None = None,
        enricher: ListingEnricher | None = None,
    ) -> None:
        self._repo: ListingRepositoryProtocol = repo or ListingRepository()
        self._reservations: ReservationRepositoryProtocol = (
            reservation_repo or ReservationRepository()
        )
        self._reference = reference or ReferenceDataService()
        self._prices = price_service or PriceService()
        self._permissions = permissions or get_permission_service()
        self._enricher = enricher or ListingEnricher(
            reservation_repo=self._reservations, price_service=self._prices
        )

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------

    async def _require_write_permission(
        self, db: AsyncSession, user: CurrentUser, order_type: str
    ) -> None:
        permission = listing_write_permission(OrderType(order_type))
        if not await self._permissions.has_permission(db, user.roles, permission):
            raise PermissionDeniedError(
                f"You do not have permission to create {order_type} orders"
            )

    async def _validated_pricing(
        self, db: AsyncSession, price: Decimal | int, price_list_code: str | None
    ) -> Pricing:
        pricing = pricing_from_columns(price, price_list_code)
        if isinstance(pricing, DynamicPrice):
            await self._prices.require_price_list(db, pricing.price_list_code)
        return pricing

    async def _check_unique(
        self, db: AsyncSession, listing: Listing, exclude_id: int | None = None
    ) -> None:
        if await self._repo.exists_with_key(db, listing.kind, ListingKey.of(listing), exclude_id):
            raise _duplicate_error(listing)

    async def _get_owned(
        self, db: AsyncSession, user: CurrentUser, kind: ListingKind, listing_id: int,
        for_update: bool = False,
    ) -> Listing:
        listing = await self._repo.get_listing(
            db, kind, listing_id, owner_user_id=user.id, for_update=for_update
        )
        if listing is None:
            raise ListingNotFoundError(kind.value, listing_id)
        return listing

    async def _merge_pricing(
        self, db: AsyncSession, current: Pricing, req: ListingUpdateBase
    ) -> Pricing:
        fields = req.model_fields_set
        if "price" not in fields and "price_list_code" not in fields:
            return current
        price, price_list_code = pricing_to_columns(current)
        if "price_list_code" in fields:
            price_list_code = req.price_list_code
            if price_list_code and "price" not in fields:
                price = 0  # switching to a price list drops the fixed amount
        if "price" in fields:
            price = req.price  # type: ignore[assignment]
        return await self._validated_pricing(db, price, price_list_code)

    async def _save(self, db: AsyncSession, listing: Listing, is_new: bool) -> Listing:
        """Insert or update; a lost unique-key race becomes DuplicateListingError."""
        await self._check_unique(db, listing, exclude_id=None if is_new else listing.id)
        try:
            if is_new:
                return await self._repo.insert_listing(db, listing)
            return await self._repo.update_listing(db, listing)
        except IntegrityError as exc:
            if not _is_key_violation(exc):
                raise
            raise _duplicate_error(listing) from exc

    async def _commit_new(self, db: AsyncSession, draft: Listing) -> Listing:
        try:
            saved = await self._save(db, draft, is_new=True)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return saved

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_sell_listings(
        self, db: AsyncSession, user: CurrentUser
    ) -> SellListingListResponse:
        listings = await self._repo.list_owned(db, ListingKind.SELL, user.id)
        items = await self._enricher.enrich_sell_listings(db, listings)  # type: ignore[arg-type]
        return SellListingListResponse(items=items)

    async def list_buy_requests(
        self, db: AsyncSession, user: CurrentUser
    ) -> BuyRequestListResponse:
        listings = await self._repo.list_owned(db, ListingKind.BUY, user.id)
        items = await self._enricher.enrich_buy_requests(db, listings)  # type: ignore[arg-type]
        return BuyRequestListResponse(items=items)

    async def get_sell_listing(
        self, db: AsyncSession, user: CurrentUser, listing_id: int
    ) -> SellListingView:
        listing = await self._get_owned(db, user, ListingKind.SELL, listing_id)
        [view] = await self._enricher.enrich_sell_listings(db, [listing])  # type: ignore[list-item]
        return view

    async def get_buy_request(
        self, db: AsyncSession, user: CurrentUser, listing_id: int
    ) -> BuyRequestView:
        listing = await self._get_owned(db, user, ListingKind.BUY, listing_id)
        [view] = await self._enricher.enrich_buy_requests(db, [listing])  # type: ignore[list-item]
        return view

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create_sell_listing(
        self, db: AsyncSession, user: CurrentUser, req: SellListingCreateRequest
    ) -> SellListingView:
        await self._require_write_permission(db, user, req.order_type.value)
        await self._reference.require_commodity(db, req.commodity_ticker)
        await self._reference.require_location(db, req.location_id)
        draft = SellListing(
            id=0,
            owner_user_id=user.id,
            commodity_ticker=req.commodity_ticker,
            location_id=req.location_id,
            currency=req.currency.value,
            order_type=req.order_type.value,
            pricing=await self._validated_pricing(db, req.price, req.price_list_code),
            limit_policy=limit_policy_from_columns(req.limit_mode, req.limit_quantity),
        )
        listing = await self._commit_new(db, draft)
        logger.info(
            "Sell listing %d created by user %d (%s @ %s)",
            listing.id, user.id, listing.commodity_ticker, listing.location_id,
        )
        [view] = await self._enricher.enrich_sell_listings(db, [listing])  # type: ignore[list-item]
        return view

    async def create_buy_request(
        self, db: AsyncSession, user: CurrentUser, req: BuyRequestCreateRequest
    ) -> BuyRequestView:
        await self._require_write_permission(db, user, req.order_type.value)
        if req.quantity <= 0:
            raise InvalidQuantityError(req.quantity)
        await self._reference.require_commodity(db, req.commodity_ticker)
        await self._reference.require_location(db, req.location_id)
        draft = BuyRequest(
            id=0,
            owner_user_id=user.id,
            commodity_ticker=req.commodity_ticker,
            location_id=req.location_id,
            currency=req.currency.value,
            order_type=req.order_type.value,
            pricing=await self._validated_pricing(db, req.price, req.price_list_code),
            quantity=req.quantity,
        )
        listing = await self._commit_new(db, draft)
        logger.info(
            "Buy request %d created by user %d (%s @ %s)",
            listing.id, user.id, listing.commodity_ticker, listing.location_id,
        )
        [view] = await self._enricher.enrich_buy_requests(db, [listing])  # type: ignore[list-item]
        return view

    async def update_sell_listing(
        self, db: AsyncSession, user: CurrentUser, listing_id: int, req: SellListingUpdateRequest
    ) -> SellListingView:
        try:
            current = cast(
                SellListing,
                await self._get_owned(db, user, ListingKind.SELL, listing_id, for_update=True),
            )
            order_type = req.order_type.value if req.order_type else current.order_type
            await self._require_write_permission(db, user, order_type)

            limit_policy = current.limit_policy
            if "limit_mode" in req.model_fields_set or "limit_quantity" in req.model_fields_set:
                limit_policy = limit_policy_from_columns(
                    req.limit_mode or current.limit_policy.mode,
                    req.limit_quantity
                    if "limit_quantity" in req.model_fields_set
                    else current.limit_policy.limit_quantity,
                )
            updated = dataclasses.replace(
                current,
                currency=req.currency.value if req.currency else current.currency,
                order_type=order_type,
                pricing=await self._merge_pricing(db, current.pricing, req),
                limit_policy=limit_policy,
            )
            listing = await self._save(db, updated, is_new=False)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Sell listing %d updated by user %d", listing.id, user.id)
        [view] = await self._enricher.enrich_sell_listings(db, [listing])  # type: ignore[list-item]
        return view

    async def update_buy_request(
        self, db: AsyncSession, user: CurrentUser, listing_id: int, req: BuyRequestUpdateRequest
    ) -> BuyRequestView:
        try:
            current = cast(
                BuyRequest,
                await self._get_owned(db, user, ListingKind.BUY, listing_id, for_update=True),
            )
            order_type = req.order_type.value if req.order_type else current.order_type
            await self._require_write_permission(db, user, order_type)

            quantity = current.quantity
            if "quantity" in req.model_fields_set:
                if req.quantity is None or req.quantity <= 0:
                    raise InvalidQuantityError(req.quantity or 0)
                quantity = req.quantity
            updated = dataclasses.replace(
                current,
                currency=req.currency.value if req.currency else current.currency,
                order_type=order_type,
                pricing=await self._merge_pricing(db, current.pricing, req),
                quantity=quantity,
            )
            listing = await self._save(db, updated, is_new=False)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Buy request %d updated by user %d", listing.id, user.id)
        [view] = await self._enricher.enrich_buy_requests(db, [listing])  # type: ignore[list-item]
        return view

    async def delete_listing(
        self, db: AsyncSession, user: CurrentUser, kind: ListingKind, listing_id: int
    ) -> DeleteListingResponse:
        try:
            await self._get_owned(db, user, kind, listing_id, for_update=True)
            cancelled = await self._reservations.cancel_active_for_listing(db, kind, listing_id)
            await self._repo.delete_listing(db, kind, listing_id, user.id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info(
            "%s listing %d deleted by user %d; %d active reservations cancelled",
            kind.value.capitalize(), listing_id, user.id, cancelled,
        )
        return DeleteListingResponse(id=listing_id, cancelled_reservations=cancelled)
