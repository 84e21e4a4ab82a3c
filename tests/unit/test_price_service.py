"""Unit tests for PriceService: book loading, effective price, adjustment CRUD."""

from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.cx_common.errors import (
    InvalidAdjustmentWindowError,
    PermissionDeniedError,
    PriceAdjustmentNotFoundError,
    UnknownPriceListError,
)
from src.cx_gateway.permissions.service import PRICES_MANAGE
from src.cx_pricing.application.schemas import (
    PriceAdjustmentCreateRequest,
    PriceAdjustmentUpdateRequest,
)
from src.cx_pricing.application.service import PriceQuery, PriceService
from src.cx_pricing.domain.models import DynamicPrice, FixedPrice, PriceAdjustment, PriceList

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)
ADMIN_ROLES = ("admin",)


def _make_price_list(**kwargs) -> PriceList:
    defaults = dict(code="KAWA", name="Kawa", currency="CIS", default_location_id="MOR")
    defaults.update(kwargs)
    return PriceList(**defaults)


def _make_adjustment(**kwargs) -> PriceAdjustment:
    defaults = dict(
        id=5,
        price_list_code="KAWA",
        commodity_ticker=None,
        location_id=None,
        currency=None,
        adjustment_type="percentage",
        adjustment_value=Decimal("10"),
        effective_from=datetime(2026, 1, 1, tzinfo=UTC),
        effective_until=datetime(2026, 6, 1, tzinfo=UTC),
    )
    defaults.update(kwargs)
    return PriceAdjustment(**defaults)


@pytest.fixture
def db() -> MagicMock:
    session = MagicMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    return session


@pytest.fixture
def repo() -> MagicMock:
    r = MagicMock()
    r.get_price_list = AsyncMock(return_value=_make_price_list())
    r.get_base_prices = AsyncMock(return_value={"BEN": Decimal("100")})
    r.list_scoped_adjustments = AsyncMock(return_value=[])
    r.list_adjustments = AsyncMock(return_value=[_make_adjustment()])
    r.get_adjustment = AsyncMock(return_value=_make_adjustment())
    r.insert_adjustment = AsyncMock(side_effect=lambda db, adj: adj)
    r.update_adjustment = AsyncMock(side_effect=lambda db, adj: adj)
    r.delete_adjustment = AsyncMock(return_value=True)
    return r


@pytest.fixture
def permissions() -> MagicMock:
    p = MagicMock()
    p.has_permission = AsyncMock(return_value=True)
    return p


@pytest.fixture
def svc(repo: MagicMock, permissions: MagicMock) -> PriceService:
    return PriceService(repo=repo, permissions=permissions)


class TestResolution:
    @pytest.mark.asyncio
    async def test_loads_requested_and_fallback_locations(
        self, svc: PriceService, repo: MagicMock, db: MagicMock
    ) -> None:
        book = await svc.load_price_book(db, "KAWA", "RAT", "BEN")
        assert book is not None
        repo.get_base_prices.assert_awaited_once_with(db, "KAWA", "RAT", ["BEN", "MOR"])

    @pytest.mark.asyncio
    async def test_unknown_list_has_no_book(
        self, svc: PriceService, repo: MagicMock, db: MagicMock
    ) -> None:
        repo.get_price_list = AsyncMock(return_value=None)
        assert await svc.load_price_book(db, "NOPE", "RAT", "BEN") is None
        repo.get_base_prices.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_base_prices_skips_adjustments(
        self, svc: PriceService, repo: MagicMock, db: MagicMock
    ) -> None:
        repo.get_base_prices = AsyncMock(return_value={})
        book = await svc.load_price_book(db, "KAWA", "RAT", "BEN")
        assert book is not None and book.adjustments == []
        repo.list_scoped_adjustments.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_resolve_many_loads_each_book_once(
        self, svc: PriceService, repo: MagicMock, db: MagicMock
    ) -> None:
        items = [
            PriceQuery(DynamicPrice("KAWA"), "CIS", "RAT", "BEN"),
            PriceQuery(DynamicPrice("KAWA"), "CIS", "RAT", "BEN"),
            PriceQuery(FixedPrice(Decimal("3")), "ICA", "RAT", "BEN"),
        ]
        prices = await svc.resolve_many(db, items, NOW)
        assert [p.price for p in prices if p] == [
            Decimal("100.00"), Decimal("100.00"), Decimal("3"),
        ]
        repo.get_price_list.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_effective_price(self, svc: PriceService, repo: MagicMock, db: MagicMock) -> None:
        repo.list_scoped_adjustments = AsyncMock(return_value=[_make_adjustment()])
        result = await svc.get_effective_price(db, "kawa", "RAT", "BEN", NOW)
        assert result.price == Decimal("110.00")
        assert result.currency == "CIS"
        assert result.adjustment_id == 5
        repo.get_price_list.assert_awaited_with(db, "KAWA")

    @pytest.mark.asyncio
    async def test_effective_price_without_match(
        self, svc: PriceService, repo: MagicMock, db: MagicMock
    ) -> None:
        repo.get_base_prices = AsyncMock(return_value={})
        result = await svc.get_effective_price(db, "KAWA", "RAT", "BEN", NOW)
        assert result.price is None
        assert result.currency is None

    @pytest.mark.asyncio
    async def test_effective_price_unknown_list(
        self, svc: PriceService, repo: MagicMock, db: MagicMock
    ) -> None:
        repo.get_price_list = AsyncMock(return_value=None)
        with pytest.raises(UnknownPriceListError):
            await svc.get_effective_price(db, "NOPE", "RAT", "BEN", NOW)


class TestAdjustmentManagement:
    @pytest.mark.asyncio
    async def test_requires_manage_permission(
        self, svc: PriceService, permissions: MagicMock, repo: MagicMock, db: MagicMock
    ) -> None:
        permissions.has_permission = AsyncMock(return_value=False)
        with pytest.raises(PermissionDeniedError):
            await svc.list_adjustments(db, ("member",))
        permissions.has_permission.assert_awaited_once_with(db, ("member",), PRICES_MANAGE)
        repo.list_adjustments.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_list_uppercases_filters(
        self, svc: PriceService, repo: MagicMock, db: MagicMock
    ) -> None:
        result = await svc.list_adjustments(db, ADMIN_ROLES, "kawa", "rat", True)
        repo.list_adjustments.assert_awaited_once_with(db, "KAWA", "RAT", True)
        assert len(result.items) == 1

    @pytest.mark.asyncio
    async def test_create_records_author(
        self, svc: PriceService, repo: MagicMock, db: MagicMock
    ) -> None:
        req = PriceAdjustmentCreateRequest(
            price_list_code="kawa", adjustment_type="fixed", adjustment_value=Decimal("-2.5"),
            currency="CIS",
        )
        result = await svc.create_adjustment(db, 9, ADMIN_ROLES, req)
        draft = repo.insert_adjustment.await_args.args[1]
        assert draft.created_by_user_id == 9
        assert draft.price_list_code == "KAWA"
        assert draft.currency == "CIS"
        assert result.adjustment_type == "fixed"
        db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_create_unknown_price_list(
        self, svc: PriceService, repo: MagicMock, db: MagicMock
    ) -> None:
        repo.get_price_list = AsyncMock(return_value=None)
        req = PriceAdjustmentCreateRequest(
            price_list_code="NOPE", adjustment_type="fixed", adjustment_value=Decimal("1"),
        )
        with pytest.raises(UnknownPriceListError):
            await svc.create_adjustment(db, 9, ADMIN_ROLES, req)
        repo.insert_adjustment.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_get_missing(self, svc: PriceService, repo: MagicMock, db: MagicMock) -> None:
        repo.get_adjustment = AsyncMock(return_value=None)
        with pytest.raises(PriceAdjustmentNotFoundError):
            await svc.get_adjustment(db, ADMIN_ROLES, 5)

    @pytest.mark.asyncio
    async def test_update_merges_only_sent_fields(
        self, svc: PriceService, repo: MagicMock, db: MagicMock
    ) -> None:
        req = PriceAdjustmentUpdateRequest(priority=3, location_id=None)
        result = await svc.update_adjustment(db, 9, ADMIN_ROLES, 5, req)
        merged = repo.update_adjustment.await_args.args[1]
        assert merged.priority == 3
        assert merged.location_id is None
        assert merged.adjustment_value == Decimal("10")
        assert result.priority == 3

    @pytest.mark.asyncio
    async def test_update_rejects_inverted_window(
        self, svc: PriceService, repo: MagicMock, db: MagicMock
    ) -> None:
        req = PriceAdjustmentUpdateRequest(effective_until=datetime(2025, 12, 1, tzinfo=UTC))
        with pytest.raises(InvalidAdjustmentWindowError):
            await svc.update_adjustment(db, 9, ADMIN_ROLES, 5, req)
        repo.update_adjustment.assert_not_awaited()
        db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_delete_missing(self, svc: PriceService, repo: MagicMock, db: MagicMock) -> None:
        repo.delete_adjustment = AsyncMock(return_value=False)
        with pytest.raises(PriceAdjustmentNotFoundError):
            await svc.delete_adjustment(db, 9, ADMIN_ROLES, 5)
        db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_delete(self, svc: PriceService, repo: MagicMock, db: MagicMock) -> None:
        await svc.delete_adjustment(db, 9, ADMIN_ROLES, 5)
        repo.delete_adjustment.assert_awaited_once_with(db, 5)
        db.commit.assert_awaited_once()
