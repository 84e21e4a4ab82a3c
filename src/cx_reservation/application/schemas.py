# src/cx_reservation/application/schemas.py
from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from src.cx_common.enums import ReservationStatus
from src.cx_pricing.domain.models import ResolvedPrice
from src.cx_reservation.domain.models import (
    BuyTarget,
    Reservation,
    ReservationDetail,
    SellTarget,
    TargetRef,
)


class CreateReservationRequest(BaseModel):
    sell_listing_id: int | None = None
    buy_request_id: int | None = None
    quantity: int
    notes: str | None = Field(None, max_length=1000)

    @model_validator(mode="after")
    def exactly_one_target(self) -> "CreateReservationRequest":
        if (self.sell_listing_id is None) == (self.buy_request_id is None):
            raise ValueError("Provide exactly one of sell_listing_id or buy_request_id")
        return self

    def target(self) -> TargetRef:
        if self.sell_listing_id is not None:
            return SellTarget(self.sell_listing_id)
        return BuyTarget(self.buy_request_id)  # type: ignore[arg-type]


class UpdateStatusRequest(BaseModel):
    status: ReservationStatus
    notes: str | None = Field(None, max_length=1000)


class ReservationResponse(BaseModel):
    """Bare reservation row, returned after a status change."""

    id: int
    listing_kind: Literal["sell", "buy"]
    sell_listing_id: int | None
    buy_request_id: int | None
    counterparty_user_id: int
    quantity: int
    status: str
    notes: str | None
    expires_at: datetime | None
    version: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_domain(cls, r: Reservation) -> "ReservationResponse":
        return cls(
            id=r.id,
            listing_kind=r.target.kind.value,
            sell_listing_id=r.target.listing_id if isinstance(r.target, SellTarget) else None,
            buy_request_id=r.target.listing_id if isinstance(r.target, BuyTarget) else None,
            counterparty_user_id=r.counterparty_user_id,
            quantity=r.quantity,
            status=r.status,
            notes=r.notes,
            expires_at=r.expires_at,
            version=r.version,
            created_at=r.created_at,
            updated_at=r.updated_at,
        )


class ReservationView(ReservationResponse):
    """Reservation joined with its listing, as seen by one of the parties."""

    owner_user_id: int
    commodity_ticker: str
    location_id: str
    currency: str
    order_type: str
    price: Decimal | None
    price_currency: str | None
    is_fallback: bool = False
    is_owner: bool
    is_counterparty: bool

    @classmethod
    def build(
        cls, detail: ReservationDetail, viewer_user_id: int, resolved: ResolvedPrice | None
    ) -> "ReservationView":
        base = ReservationResponse.from_domain(detail.reservation).model_dump()
        return cls(
            **base,
            owner_user_id=detail.owner_user_id,
            commodity_ticker=detail.commodity_ticker,
            location_id=detail.location_id,
            currency=detail.currency,
            order_type=detail.order_type,
            price=resolved.price if resolved else None,
            price_currency=resolved.currency if resolved else None,
            is_fallback=resolved.is_fallback if resolved else False,
            is_owner=detail.owner_user_id == viewer_user_id,
            is_counterparty=detail.reservation.counterparty_user_id == viewer_user_id,
        )


class ReservationListResponse(BaseModel):
    items: list[ReservationView]

