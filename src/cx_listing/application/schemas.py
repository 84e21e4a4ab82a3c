# src/cx_listing/application/schemas.py
"""Request / response schemas for sell listings and buy requests.

Range checks live here; the pricing-mode rule (price 0 with a price list,
> 0 without) is enforced by the domain constructor in the service so that
it surfaces as PricingModeError.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator, model_validator

from src.cx_common.enums import Currency, LimitMode, OrderType
from src.cx_inventory.domain.availability import BuyQuantities, SellQuantities
from src.cx_inventory.domain.models import InventoryPosition
from src.cx_listing.domain.models import BuyRequest, SellListing
from src.cx_pricing.domain.models import ResolvedPrice, pricing_to_columns


def _upper_code(v: str | None) -> str | None:
    if v is None:
        return None
    v = v.strip()
    return v.upper() if v else None


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class _ListingCreateBase(BaseModel):
    commodity_ticker: str = Field(..., min_length=1, max_length=10)
    location_id: str = Field(..., min_length=1, max_length=32)
    currency: Currency
    order_type: OrderType = OrderType.INTERNAL
    price: Decimal = Field(Decimal("0"), ge=0, max_digits=14, decimal_places=2)
    price_list_code: str | None = Field(None, max_length=32)

    @field_validator("commodity_ticker")
    @classmethod
    def upper_ticker(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator("location_id")
    @classmethod
    def strip_location(cls, v: str) -> str:
        return v.strip()

    @field_validator("price_list_code")
    @classmethod
    def upper_price_list(cls, v: str | None) -> str | None:
        return _upper_code(v)


class SellListingCreateRequest(_ListingCreateBase):
    limit_mode: LimitMode = LimitMode.NONE
    limit_quantity: int | None = None


class BuyRequestCreateRequest(_ListingCreateBase):
    quantity: int


class ListingUpdateBase(BaseModel):
    """Partial update; commodity and location are fixed once created."""

    currency: Currency | None = None
    order_type: OrderType | None = None
    price: Decimal | None = Field(None, ge=0, max_digits=14, decimal_places=2)
    price_list_code: str | None = Field(None, max_length=32)

    @field_validator("price_list_code")
    @classmethod
    def upper_price_list(cls, v: str | None) -> str | None:
        return _upper_code(v)

    @model_validator(mode="after")
    def check_not_null(self) -> "ListingUpdateBase":
        for name in ("currency", "order_type", "price"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class SellListingUpdateRequest(ListingUpdateBase):
    limit_mode: LimitMode | None = None
    limit_quantity: int | None = None


class BuyRequestUpdateRequest(ListingUpdateBase):
    quantity: int | None = None


# ---------------------------------------------------------------------------
# Enriched views
# ---------------------------------------------------------------------------


class _ListingViewBase(BaseModel):
    id: int
    owner_user_id: int
    commodity_ticker: str
    location_id: str
    currency: str
    order_type: str
    price: Decimal
    price_list_code: str | None
    effective_price: Decimal | None
    effective_currency: str | None
    is_fallback: bool
    price_location_id: str | None
    active_reservation_count: int
    reserved_quantity: int
    fulfilled_quantity: int
    remaining_quantity: int
    created_at: datetime | None = None
    updated_at: datetime | None = None


def _common_fields(listing: SellListing | BuyRequest, resolved: ResolvedPrice | None) -> dict:
    price, price_list_code = pricing_to_columns(listing.pricing)
    return {
        "id": listing.id,
        "owner_user_id": listing.owner_user_id,
        "commodity_ticker": listing.commodity_ticker,
        "location_id": listing.location_id,
        "currency": listing.currency,
        "order_type": listing.order_type,
        "price": price,
        "price_list_code": price_list_code,
        "effective_price": resolved.price if resolved else None,
        "effective_currency": resolved.currency if resolved else None,
        "is_fallback": resolved.is_fallback if resolved else False,
        "price_location_id": resolved.price_location_id if resolved else None,
        "created_at": listing.created_at,
        "updated_at": listing.updated_at,
    }


class SellListingView(_ListingViewBase):
    limit_mode: str
    limit_quantity: int | None
    synced_quantity: int
    available_quantity: int
    last_synced_at: datetime | None = None
    fio_uploaded_at: datetime | None = None

    @classmethod
    def build(
        cls,
        listing: SellListing,
        quantities: SellQuantities,
        position: InventoryPosition | None,
        resolved: ResolvedPrice | None,
    ) -> "SellListingView":
        return cls(
            **_common_fields(listing, resolved),
            limit_mode=listing.limit_policy.mode.value,
            limit_quantity=listing.limit_policy.limit_quantity,
            synced_quantity=quantities.synced_quantity,
            available_quantity=quantities.available_quantity,
            active_reservation_count=quantities.active_reservation_count,
            reserved_quantity=quantities.reserved_quantity,
            fulfilled_quantity=quantities.fulfilled_quantity,
            remaining_quantity=quantities.remaining_quantity,
            last_synced_at=position.last_synced_at if position else None,
            fio_uploaded_at=position.fio_uploaded_at if position else None,
        )


class BuyRequestView(_ListingViewBase):
    quantity: int

    @classmethod
    def build(
        cls, listing: BuyRequest, quantities: BuyQuantities, resolved: ResolvedPrice | None
    ) -> "BuyRequestView":
        return cls(
            **_common_fields(listing, resolved),
            quantity=listing.quantity,
            active_reservation_count=quantities.active_reservation_count,
            reserved_quantity=quantities.reserved_quantity,
            fulfilled_quantity=quantities.fulfilled_quantity,
            remaining_quantity=quantities.remaining_quantity,
        )


class SellListingListResponse(BaseModel):
    items: list[SellListingView]


class BuyRequestListResponse(BaseModel):
    items: list[BuyRequestView]


class DeleteListingResponse(BaseModel):
    id: int
    deleted: bool = True
    cancelled_reservations: int
