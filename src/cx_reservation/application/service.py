"""ReservationService — the reservation engine.

create_reservation and update_status each run in one transaction:

  create: lock listing row → validate → compute reservable → insert pending
  update: lock reservation row → resolve listing owner → check transition
          → versioned UPDATE

The listing lock serialises concurrent reservations against the same
listing, so two requests can never both take the last units. Status
changes report failures through TransitionResult instead of raising.
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.cx_common.datetime_utils import utc_now
from src.cx_common.enums import (
    ACTIVE_RESERVATION_STATUSES,
    ListingKind,
    OrderType,
    ReservationStatus,
)
from src.cx_common.errors import (
    AppError,
    ConcurrentModificationError,
    InsufficientQuantityError,
    InvalidQuantityError,
    InvalidTransitionError,
    ListingNotFoundError,
    NotReservationPartyError,
    PermissionDeniedError,
    ReservationNotFoundError,
    ReservationTargetMissingError,
    SelfReservationError,
)
from src.cx_gateway.auth.dependencies import CurrentUser
from src.cx_gateway.permissions.service import (
    PermissionService,
    get_permission_service,
    reservation_place_permission,
)
from src.cx_listing.application.enrichment import ListingEnricher
from src.cx_listing.application.schemas import BuyRequestListResponse, SellListingListResponse
from src.cx_listing.domain.models import Listing
from src.cx_listing.domain.repository import ListingRepositoryProtocol
from src.cx_listing.infrastructure.persistence import ListingRepository
from src.cx_pricing.application.service import PriceService
from src.cx_reservation.application.schemas import ReservationListResponse, ReservationView
from src.cx_reservation.domain.models import (
    Reservation,
    ReservationDetail,
    TargetRef,
    TransitionResult,
)
from src.cx_reservation.domain.repository import ReservationRepositoryProtocol, RoleFilter
from src.cx_reservation.domain.state_machine import can_transition, party_role
from src.cx_reservation.infrastructure.persistence import ReservationRepository

logger = logging.getLogger(__name__)


def _detail_of(reservation: Reservation, listing: Listing) -> ReservationDetail:
    return ReservationDetail(
        reservation=reservation,
        owner_user_id=listing.owner_user_id,
        commodity_ticker=listing.commodity_ticker,
        location_id=listing.location_id,
        currency=listing.currency,
        order_type=listing.order_type,
        pricing=listing.pricing,
    )


class ReservationService:
    def __init__(
        self,
        repo: ReservationRepositoryProtocol | None = None,
        listing_repo: ListingRepositoryProtocol | None = None,
        permissions: PermissionService | None = None,
        price_service: PriceService | None = None,
        enricher: ListingEnricher | None = None,
        ttl_hours: int | None = None,
    ) -> None:
        self._repo: ReservationRepositoryProtocol = repo or ReservationRepository()
        self._listings: ListingRepositoryProtocol = listing_repo or ListingRepository()
        self._permissions = permissions or get_permission_service()
        self._prices = price_service or PriceService()
        self._enricher = enricher or ListingEnricher(
            reservation_repo=self._repo, price_service=self._prices
        )
        self._ttl = timedelta(hours=ttl_hours or settings.RESERVATION_TTL_HOURS)

    async def _view(
        self, db: AsyncSession, detail: ReservationDetail, viewer_user_id: int
    ) -> ReservationView:
        resolved = await self._prices.resolve_for_listing(db, detail)
        return ReservationView.build(detail, viewer_user_id, resolved)

    async def _check_reservable(
        self, db: AsyncSession, listing: Listing, quantity: int, now: datetime
    ) -> None:
        reservable = await self._enricher.reservable_quantity(db, listing, now)
        if quantity > reservable:
            raise InsufficientQuantityError(quantity, reservable)

    async def _expire_lapsed(
        self,
        db: AsyncSession,
        reservation: Reservation,
        requested: ReservationStatus,
        user_id: int,
    ) -> TransitionResult:
        """Mark a reservation past expires_at as expired and refuse the change."""
        expired = ReservationStatus.EXPIRED.value
        updated = await self._repo.update_status(
            db, reservation.id, reservation.version, expired, None
        )
        if updated is None:
            raise ConcurrentModificationError(reservation.id)
        await db.commit()
        logger.info(
            "Reservation %d expired at %s; status change to %s by user %d refused",
            reservation.id, reservation.expires_at, requested.value, user_id,
        )
        return TransitionResult.failed(InvalidTransitionError(expired, requested.value))

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def create_reservation(
        self,
        db: AsyncSession,
        user: CurrentUser,
        target: TargetRef,
        quantity: int,
        notes: str | None = None,
    ) -> ReservationView:
        try:
            listing = await self._listings.get_listing(
                db, target.kind, target.listing_id, for_update=True
            )
            if listing is None:
                raise ListingNotFoundError(target.kind.value, target.listing_id)
            if listing.owner_user_id == user.id:
                raise SelfReservationError()
            permission = reservation_place_permission(OrderType(listing.order_type))
            if not await self._permissions.has_permission(db, user.roles, permission):
                raise PermissionDeniedError(
                    f"You do not have permission to place reservations on "
                    f"{listing.order_type} orders"
                )
            if quantity <= 0:
                raise InvalidQuantityError(quantity)

            now = utc_now()
            await self._check_reservable(db, listing, quantity, now)
            reservation = await self._repo.insert_reservation(
                db, target, user.id, quantity, notes, now + self._ttl
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Reservation %d created: user %d reserved %d on %s listing %d",
            reservation.id, user.id, quantity, target.kind.value, target.listing_id,
        )
        return await self._view(db, _detail_of(reservation, listing), user.id)

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    async def update_status(
        self,
        db: AsyncSession,
        user: CurrentUser,
        reservation_id: int,
        new_status: ReservationStatus,
        notes: str | None = None,
    ) -> TransitionResult:
        new_status = ReservationStatus(new_status)
        try:
            reservation = await self._repo.get_reservation(db, reservation_id, for_update=True)
            if reservation is None:
                raise ReservationNotFoundError(reservation_id)
            current = ReservationStatus(reservation.status)
            target = reservation.target
            reopening = current == ReservationStatus.CANCELLED and (
                new_status == ReservationStatus.PENDING
            )
            listing = await self._listings.get_listing(
                db, target.kind, target.listing_id, for_update=reopening
            )
            if listing is None:
                raise ReservationTargetMissingError(reservation_id)

            role = party_role(listing.owner_user_id, reservation.counterparty_user_id, user.id)
            if role is None:
                raise NotReservationPartyError()

            now = utc_now()
            if current in ACTIVE_RESERVATION_STATUSES and not reservation.holds_stock(now):
                # Lapsed but not yet swept: its stock is already released
                return await self._expire_lapsed(db, reservation, new_status, user.id)
            if not can_transition(current, role, new_status):
                raise InvalidTransitionError(current.value, new_status.value)

            expires_at = None
            if reopening:
                # A reopened reservation holds stock again: re-check and restart its clock
                await self._check_reservable(db, listing, reservation.quantity, now)
                expires_at = now + self._ttl

            updated = await self._repo.update_status(
                db, reservation_id, reservation.version, new_status.value, notes, expires_at
            )
            if updated is None:
                raise ConcurrentModificationError(reservation_id)
            await db.commit()
        except AppError as exc:
            await db.rollback()
            logger.info(
                "Reservation %d status change to %s by user %d refused: %s",
                reservation_id, new_status.value, user.id, exc.message,
            )
            return TransitionResult.failed(exc)
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Reservation %d: %s -> %s by user %d (%s)",
            reservation_id, current.value, new_status.value, user.id, role.value,
        )
        return TransitionResult.ok(updated)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_eligible(
        self,
        db: AsyncSession,
        user: CurrentUser,
        kind: ListingKind,
        commodity_ticker: str | None,
        location_id: str | None = None,
    ) -> SellListingListResponse | BuyRequestListResponse:
        """Other users' listings of `kind` that still have quantity to reserve."""
        listings = await self._listings.list_market(
            db, kind, commodity_ticker, location_id, exclude_owner_user_id=user.id
        )
        if kind == ListingKind.SELL:
            sells = await self._enricher.enrich_sell_listings(
                db, listings  # type: ignore[arg-type]
            )
            return SellListingListResponse(items=[v for v in sells if v.remaining_quantity > 0])
        buys = await self._enricher.enrich_buy_requests(db, listings)  # type: ignore[arg-type]
        return BuyRequestListResponse(items=[v for v in buys if v.remaining_quantity > 0])

    async def list_reservations_for_user(
        self,
        db: AsyncSession,
        user: CurrentUser,
        statuses: list[ReservationStatus] | None = None,
        role: RoleFilter = "all",
    ) -> ReservationListResponse:
        details = await self._repo.list_for_user(
            db, user.id, role, [s.value for s in statuses] if statuses else None
        )
        prices = await self._prices.resolve_many(db, details)  # type: ignore[arg-type]
        return ReservationListResponse(
            items=[
                ReservationView.build(detail, user.id, price)
                for detail, price in zip(details, prices)
            ]
        )

    async def get_reservation(
        self, db: AsyncSession, user: CurrentUser, reservation_id: int
    ) -> ReservationView:
        detail = await self._repo.get_detail(db, reservation_id)
        if detail is None:
            if await self._repo.get_reservation(db, reservation_id) is None:
                raise ReservationNotFoundError(reservation_id)
            raise ReservationTargetMissingError(reservation_id)
        if user.id not in (detail.owner_user_id, detail.reservation.counterparty_user_id):
            raise NotReservationPartyError()
        return await self._view(db, detail, user.id)
