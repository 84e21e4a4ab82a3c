"""Unit tests for ListingService (all collaborators mocked)."""

import dataclasses
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError

from src.cx_common.enums import ListingKind
from src.cx_common.errors import (
    DuplicateListingError,
    InvalidQuantityError,
    ListingNotFoundError,
    PermissionDeniedError,
    PricingModeError,
    UnknownCommodityError,
    UnknownPriceListError,
)
from src.cx_gateway.auth.dependencies import CurrentUser
from src.cx_gateway.permissions.service import ORDERS_POST_INTERNAL, ORDERS_POST_PARTNER
from src.cx_inventory.domain.models import MaxSell, NoLimit, Reserve
from src.cx_listing.application.schemas import (
    BuyRequestCreateRequest,
    BuyRequestUpdateRequest,
    SellListingCreateRequest,
    SellListingUpdateRequest,
)
from src.cx_listing.application.service import ListingService
from src.cx_listing.domain.models import BuyRequest, SellListing
from src.cx_pricing.domain.models import DynamicPrice, FixedPrice

USER = CurrentUser(id=7, roles=("member",))


def _unique_violation(constraint: str) -> IntegrityError:
    return IntegrityError(
        "INSERT INTO sell_listings ...",
        {},
        Exception(f'duplicate key value violates unique constraint "{constraint}"'),
    )


def _make_sell_listing(**kwargs) -> SellListing:
    defaults = dict(
        id=10,
        owner_user_id=7,
        commodity_ticker="RAT",
        location_id="BEN",
        currency="CIS",
        order_type="internal",
        pricing=FixedPrice(Decimal("25")),
        limit_policy=NoLimit(),
    )
    defaults.update(kwargs)
    return SellListing(**defaults)


def _make_buy_request(**kwargs) -> BuyRequest:
    defaults = dict(
        id=20,
        owner_user_id=7,
        commodity_ticker="H2O",
        location_id="BEN",
        currency="CIS",
        order_type="internal",
        pricing=FixedPrice(Decimal("2")),
        quantity=100,
    )
    defaults.update(kwargs)
    return BuyRequest(**defaults)


@pytest.fixture
def db() -> MagicMock:
    session = MagicMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    return session


@pytest.fixture
def repo() -> MagicMock:
    r = MagicMock()
    r.exists_with_key = AsyncMock(return_value=False)
    r.insert_listing = AsyncMock(
        side_effect=lambda db, listing: dataclasses.replace(listing, id=99)
    )
    r.update_listing = AsyncMock(side_effect=lambda db, listing: listing)
    r.get_listing = AsyncMock(return_value=None)
    r.delete_listing = AsyncMock(return_value=True)
    r.list_owned = AsyncMock(return_value=[])
    return r


@pytest.fixture
def permissions() -> MagicMock:
    p = MagicMock()
    p.has_permission = AsyncMock(return_value=True)
    return p


@pytest.fixture
def svc(repo: MagicMock, permissions: MagicMock) -> ListingService:
    reservations = MagicMock()
    reservations.cancel_active_for_listing = AsyncMock(return_value=0)
    reference = MagicMock()
    reference.require_commodity = AsyncMock()
    reference.require_location = AsyncMock()
    prices = MagicMock()
    prices.require_price_list = AsyncMock()
    enricher = MagicMock()
    enricher.enrich_sell_listings = AsyncMock(side_effect=lambda db, ls: ls)
    enricher.enrich_buy_requests = AsyncMock(side_effect=lambda db, ls: ls)
    return ListingService(
        repo=repo,
        reservation_repo=reservations,
        reference=reference,
        price_service=prices,
        permissions=permissions,
        enricher=enricher,
    )


class TestCreateSellListing:
    @pytest.mark.asyncio
    async def test_creates_fixed_price_listing(
        self, svc: ListingService, repo: MagicMock, db: MagicMock
    ) -> None:
        req = SellListingCreateRequest(
            commodity_ticker="rat", location_id="BEN", currency="CIS",
            price=Decimal("25"), limit_mode="reserve", limit_quantity=200,
        )
        listing = await svc.create_sell_listing(db, USER, req)
        assert listing.id == 99
        assert listing.owner_user_id == 7
        assert listing.commodity_ticker == "RAT"
        assert listing.pricing == FixedPrice(Decimal("25"))
        assert listing.limit_policy == Reserve(200)
        db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_creates_dynamic_price_listing(
        self, svc: ListingService, db: MagicMock
    ) -> None:
        req = SellListingCreateRequest(
            commodity_ticker="RAT", location_id="BEN", currency="CIS",
            price_list_code="kawa",
        )
        listing = await svc.create_sell_listing(db, USER, req)
        assert listing.pricing == DynamicPrice("KAWA")
        svc._prices.require_price_list.assert_awaited_once_with(db, "KAWA")

    @pytest.mark.asyncio
    async def test_partner_order_needs_partner_permission(
        self, svc: ListingService, permissions: MagicMock, db: MagicMock, repo: MagicMock
    ) -> None:
        permissions.has_permission = AsyncMock(return_value=False)
        req = SellListingCreateRequest(
            commodity_ticker="RAT", location_id="BEN", currency="CIS",
            order_type="partner", price=Decimal("25"),
        )
        with pytest.raises(PermissionDeniedError) as exc_info:
            await svc.create_sell_listing(db, USER, req)
        assert "partner" in exc_info.value.message
        permissions.has_permission.assert_awaited_once_with(db, USER.roles, ORDERS_POST_PARTNER)
        repo.insert_listing.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_internal_order_checks_internal_permission(
        self, svc: ListingService, permissions: MagicMock, db: MagicMock
    ) -> None:
        req = SellListingCreateRequest(
            commodity_ticker="RAT", location_id="BEN", currency="CIS", price=Decimal("1"),
        )
        await svc.create_sell_listing(db, USER, req)
        permissions.has_permission.assert_awaited_once_with(db, USER.roles, ORDERS_POST_INTERNAL)

    @pytest.mark.asyncio
    async def test_fixed_price_must_be_positive(self, svc: ListingService, db: MagicMock) -> None:
        req = SellListingCreateRequest(commodity_ticker="RAT", location_id="BEN", currency="CIS")
        with pytest.raises(PricingModeError):
            await svc.create_sell_listing(db, USER, req)

    @pytest.mark.asyncio
    async def test_price_list_with_price_rejected(
        self, svc: ListingService, db: MagicMock
    ) -> None:
        req = SellListingCreateRequest(
            commodity_ticker="RAT", location_id="BEN", currency="CIS",
            price=Decimal("5"), price_list_code="KAWA",
        )
        with pytest.raises(PricingModeError):
            await svc.create_sell_listing(db, USER, req)

    @pytest.mark.asyncio
    async def test_unknown_price_list_rejected(self, svc: ListingService, db: MagicMock) -> None:
        svc._prices.require_price_list = AsyncMock(side_effect=UnknownPriceListError("NOPE"))
        req = SellListingCreateRequest(
            commodity_ticker="RAT", location_id="BEN", currency="CIS", price_list_code="NOPE",
        )
        with pytest.raises(UnknownPriceListError):
            await svc.create_sell_listing(db, USER, req)

    @pytest.mark.asyncio
    async def test_unknown_commodity_rejected(self, svc: ListingService, db: MagicMock) -> None:
        svc._reference.require_commodity = AsyncMock(side_effect=UnknownCommodityError("XXX"))
        req = SellListingCreateRequest(
            commodity_ticker="XXX", location_id="BEN", currency="CIS", price=Decimal("1"),
        )
        with pytest.raises(UnknownCommodityError):
            await svc.create_sell_listing(db, USER, req)

    @pytest.mark.asyncio
    async def test_duplicate_key_rolls_back(
        self, svc: ListingService, repo: MagicMock, db: MagicMock
    ) -> None:
        repo.exists_with_key = AsyncMock(return_value=True)
        req = SellListingCreateRequest(
            commodity_ticker="RAT", location_id="BEN", currency="CIS", price=Decimal("1"),
        )
        with pytest.raises(DuplicateListingError):
            await svc.create_sell_listing(db, USER, req)
        repo.insert_listing.assert_not_awaited()
        db.rollback.assert_awaited_once()
        db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_concurrent_duplicate_insert_reported_as_duplicate(
        self, svc: ListingService, repo: MagicMock, db: MagicMock
    ) -> None:
        repo.insert_listing = AsyncMock(side_effect=_unique_violation("uq_sell_listings_key"))
        req = SellListingCreateRequest(
            commodity_ticker="RAT", location_id="BEN", currency="CIS", price=Decimal("1"),
        )
        with pytest.raises(DuplicateListingError) as exc_info:
            await svc.create_sell_listing(db, USER, req)
        assert exc_info.value.code == 2002
        assert exc_info.value.http_status == 400
        db.rollback.assert_awaited_once()
        db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_other_integrity_errors_propagate(
        self, svc: ListingService, repo: MagicMock, db: MagicMock
    ) -> None:
        repo.insert_listing = AsyncMock(side_effect=_unique_violation("ck_sell_listings_pricing"))
        req = SellListingCreateRequest(
            commodity_ticker="RAT", location_id="BEN", currency="CIS", price=Decimal("1"),
        )
        with pytest.raises(IntegrityError):
            await svc.create_sell_listing(db, USER, req)
        db.rollback.assert_awaited_once()


class TestCreateBuyRequest:
    @pytest.mark.asyncio
    async def test_creates_buy_request(self, svc: ListingService, db: MagicMock) -> None:
        req = BuyRequestCreateRequest(
            commodity_ticker="H2O", location_id="BEN", currency="CIS",
            price=Decimal("2"), quantity=100,
        )
        listing = await svc.create_buy_request(db, USER, req)
        assert isinstance(listing, BuyRequest)
        assert listing.quantity == 100

    @pytest.mark.asyncio
    @pytest.mark.parametrize("quantity", [0, -5])
    async def test_quantity_must_be_positive(
        self, svc: ListingService, db: MagicMock, quantity: int
    ) -> None:
        req = BuyRequestCreateRequest(
            commodity_ticker="H2O", location_id="BEN", currency="CIS",
            price=Decimal("2"), quantity=quantity,
        )
        with pytest.raises(InvalidQuantityError):
            await svc.create_buy_request(db, USER, req)


class TestUpdateListing:
    @pytest.mark.asyncio
    async def test_other_users_listing_not_found(
        self, svc: ListingService, repo: MagicMock, db: MagicMock
    ) -> None:
        req = SellListingUpdateRequest(price=Decimal("30"))
        with pytest.raises(ListingNotFoundError):
            await svc.update_sell_listing(db, USER, 10, req)
        repo.get_listing.assert_awaited_once_with(
            db, ListingKind.SELL, 10, owner_user_id=7, for_update=True
        )
        db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_switch_to_price_list_drops_fixed_price(
        self, svc: ListingService, repo: MagicMock, db: MagicMock
    ) -> None:
        repo.get_listing = AsyncMock(return_value=_make_sell_listing())
        req = SellListingUpdateRequest(price_list_code="kawa")
        listing = await svc.update_sell_listing(db, USER, 10, req)
        assert listing.pricing == DynamicPrice("KAWA")

    @pytest.mark.asyncio
    async def test_switch_back_to_fixed_needs_price(
        self, svc: ListingService, repo: MagicMock, db: MagicMock
    ) -> None:
        repo.get_listing = AsyncMock(
            return_value=_make_sell_listing(pricing=DynamicPrice("KAWA"))
        )
        req = SellListingUpdateRequest(price_list_code=None)
        with pytest.raises(PricingModeError):
            await svc.update_sell_listing(db, USER, 10, req)

    @pytest.mark.asyncio
    async def test_untouched_fields_kept(
        self, svc: ListingService, repo: MagicMock, db: MagicMock
    ) -> None:
        repo.get_listing = AsyncMock(return_value=_make_sell_listing(limit_policy=MaxSell(50)))
        listing = await svc.update_sell_listing(
            db, USER, 10, SellListingUpdateRequest(limit_quantity=80)
        )
        assert listing.limit_policy == MaxSell(80)
        assert listing.pricing == FixedPrice(Decimal("25"))
        repo.exists_with_key.assert_awaited_once()
        assert repo.exists_with_key.await_args.args[3] == 10

    @pytest.mark.asyncio
    async def test_update_buy_quantity(
        self, svc: ListingService, repo: MagicMock, db: MagicMock
    ) -> None:
        repo.get_listing = AsyncMock(return_value=_make_buy_request())
        listing = await svc.update_buy_request(
            db, USER, 20, BuyRequestUpdateRequest(quantity=250)
        )
        assert listing.quantity == 250

    @pytest.mark.asyncio
    async def test_update_buy_quantity_zero_rejected(
        self, svc: ListingService, repo: MagicMock, db: MagicMock
    ) -> None:
        repo.get_listing = AsyncMock(return_value=_make_buy_request())
        with pytest.raises(InvalidQuantityError):
            await svc.update_buy_request(db, USER, 20, BuyRequestUpdateRequest(quantity=0))

    @pytest.mark.asyncio
    async def test_changing_to_partner_needs_partner_permission(
        self, svc: ListingService, repo: MagicMock, permissions: MagicMock, db: MagicMock
    ) -> None:
        repo.get_listing = AsyncMock(return_value=_make_sell_listing())
        permissions.has_permission = AsyncMock(return_value=False)
        with pytest.raises(PermissionDeniedError):
            await svc.update_sell_listing(
                db, USER, 10, SellListingUpdateRequest(order_type="partner")
            )
        repo.update_listing.assert_not_awaited()
        db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_update_locks_row_and_commits(
        self, svc: ListingService, repo: MagicMock, db: MagicMock
    ) -> None:
        repo.get_listing = AsyncMock(return_value=_make_buy_request())
        await svc.update_buy_request(db, USER, 20, BuyRequestUpdateRequest(quantity=300))
        repo.get_listing.assert_awaited_once_with(
            db, ListingKind.BUY, 20, owner_user_id=7, for_update=True
        )
        db.commit.assert_awaited_once()
        db.rollback.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_concurrent_duplicate_update_reported_as_duplicate(
        self, svc: ListingService, repo: MagicMock, db: MagicMock
    ) -> None:
        repo.get_listing = AsyncMock(return_value=_make_sell_listing())
        repo.update_listing = AsyncMock(side_effect=_unique_violation("uq_sell_listings_key"))
        with pytest.raises(DuplicateListingError):
            await svc.update_sell_listing(
                db, USER, 10, SellListingUpdateRequest(currency="NCC")
            )
        db.rollback.assert_awaited_once()
        db.commit.assert_not_awaited()


class TestDeleteListing:
    @pytest.mark.asyncio
    async def test_delete_cancels_active_reservations(
        self, svc: ListingService, repo: MagicMock, db: MagicMock
    ) -> None:
        repo.get_listing = AsyncMock(return_value=_make_sell_listing())
        svc._reservations.cancel_active_for_listing = AsyncMock(return_value=3)
        result = await svc.delete_listing(db, USER, ListingKind.SELL, 10)
        assert result.id == 10
        assert result.deleted is True
        assert result.cancelled_reservations == 3
        svc._reservations.cancel_active_for_listing.assert_awaited_once_with(
            db, ListingKind.SELL, 10
        )
        repo.delete_listing.assert_awaited_once_with(db, ListingKind.SELL, 10, 7)
        db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_delete_missing_listing_rolls_back(
        self, svc: ListingService, repo: MagicMock, db: MagicMock
    ) -> None:
        with pytest.raises(ListingNotFoundError):
            await svc.delete_listing(db, USER, ListingKind.BUY, 5)
        repo.delete_listing.assert_not_awaited()
        db.rollback.assert_awaited_once()
