"""ListingEnricher — computed quantities and display prices for listings.

Batch-oriented: one round of inventory / reservation / price lookups per
call regardless of how many listings are passed in.
"""

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.cx_common.datetime_utils import utc_now
from src.cx_common.enums import ListingKind
from src.cx_inventory.domain.availability import (
    BuyQuantities,
    ReservationTotals,
    SellQuantities,
    buy_quantities,
    sell_quantities,
)
from src.cx_inventory.domain.models import InventoryPosition
from src.cx_inventory.domain.repository import InventoryRepositoryProtocol
from src.cx_inventory.infrastructure.persistence import InventoryRepository
from src.cx_listing.application.schemas import BuyRequestView, SellListingView
from src.cx_listing.domain.models import BuyRequest, Listing, SellListing
from src.cx_pricing.application.service import PriceService
from src.cx_reservation.domain.repository import ReservationRepositoryProtocol
from src.cx_reservation.infrastructure.persistence import ReservationRepository


class ListingEnricher:
    def __init__(
        self,
        inventory_repo: InventoryRepositoryProtocol | None = None,
        reservation_repo: ReservationRepositoryProtocol | None = None,
        price_service: PriceService | None = None,
    ) -> None:
        self._inventory: InventoryRepositoryProtocol = inventory_repo or InventoryRepository()
        self._reservations: ReservationRepositoryProtocol = (
            reservation_repo or ReservationRepository()
        )
        self._prices = price_service or PriceService()

    async def _sell_quantities(
        self, db: AsyncSession, listings: list[SellListing], now: datetime
    ) -> list[tuple[SellQuantities, InventoryPosition | None]]:
        ids = [listing.id for listing in listings]
        owners = sorted({listing.owner_user_id for listing in listings})
        positions = await self._inventory.get_positions(db, owners)
        sync_times = await self._inventory.get_location_sync_times(db, owners)
        totals = await self._reservations.get_active_totals(db, ListingKind.SELL, ids, now)
        fulfilled = await self._reservations.get_fulfilled_trades(db, ListingKind.SELL, ids)

        out: list[tuple[SellQuantities, InventoryPosition | None]] = []
        for listing in listings:
            position = positions.get(
                (listing.owner_user_id, listing.commodity_ticker, listing.location_id)
            )
            quantities = sell_quantities(
                listing.limit_policy,
                position,
                totals.get(listing.id, ReservationTotals()),
                fulfilled.get(listing.id, []),
                sync_times.get((listing.owner_user_id, listing.location_id)),
            )
            out.append((quantities, position))
        return out

    async def _buy_quantities(
        self, db: AsyncSession, listings: list[BuyRequest], now: datetime
    ) -> list[BuyQuantities]:
        ids = [listing.id for listing in listings]
        totals = await self._reservations.get_active_totals(db, ListingKind.BUY, ids, now)
        fulfilled = await self._reservations.get_fulfilled_trades(db, ListingKind.BUY, ids)
        return [
            buy_quantities(
                listing.quantity,
                totals.get(listing.id, ReservationTotals()),
                fulfilled.get(listing.id, []),
            )
            for listing in listings
        ]

    async def reservable_quantity(
        self, db: AsyncSession, listing: Listing, now: datetime | None = None
    ) -> int:
        now = now or utc_now()
        if isinstance(listing, SellListing):
            [(quantities, _)] = await self._sell_quantities(db, [listing], now)
            return quantities.remaining_quantity
        [buy] = await self._buy_quantities(db, [listing], now)
        return buy.remaining_quantity

    async def enrich_sell_listings(
        self, db: AsyncSession, listings: list[SellListing], now: datetime | None = None
    ) -> list[SellListingView]:
        if not listings:
            return []
        now = now or utc_now()
        quantities = await self._sell_quantities(db, listings, now)
        prices = await self._prices.resolve_many(db, listings, now)
        return [
            SellListingView.build(listing, q, position, price)
            for listing, (q, position), price in zip(listings, quantities, prices)
        ]

    async def enrich_buy_requests(
        self, db: AsyncSession, listings: list[BuyRequest], now: datetime | None = None
    ) -> list[BuyRequestView]:
        if not listings:
            return []
        now = now or utc_now()
        quantities = await self._buy_quantities(db, listings, now)
        prices = await self._prices.resolve_many(db, listings, now)
        return [
            BuyRequestView.build(listing, q, price)
            for listing, q, price in zip(listings, quantities, prices)
        ]

    async def enrich(
        self, db: AsyncSession, listings: list[Listing], now: datetime | None = None
    ) -> list[SellListingView] | list[BuyRequestView]:
        """Enrich a list of one kind of listing."""
        if listings and isinstance(listings[0], SellListing):
            return await self.enrich_sell_listings(db, listings, now)  # type: ignore[arg-type]
        return await self.enrich_buy_requests(db, listings, now)  # type: ignore[arg-type]
