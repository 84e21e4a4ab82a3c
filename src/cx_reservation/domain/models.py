"""Reservation domain models — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime
from typing import ClassVar

from src.cx_common.enums import ACTIVE_RESERVATION_STATUSES, ListingKind, ReservationStatus
from src.cx_common.errors import AppError
from src.cx_pricing.domain.models import Pricing


@dataclass(frozen=True)
class SellTarget:
    sell_listing_id: int

    kind: ClassVar[ListingKind] = ListingKind.SELL

    @property
    def listing_id(self) -> int:
        return self.sell_listing_id


@dataclass(frozen=True)
class BuyTarget:
    buy_request_id: int

    kind: ClassVar[ListingKind] = ListingKind.BUY

    @property
    def listing_id(self) -> int:
        return self.buy_request_id


TargetRef = SellTarget | BuyTarget


def target_for(kind: ListingKind, listing_id: int) -> TargetRef:
    if kind == ListingKind.SELL:
        return SellTarget(listing_id)
    return BuyTarget(listing_id)


def target_from_columns(sell_listing_id: int | None, buy_request_id: int | None) -> TargetRef:
    """Exactly one of the two columns is set (DB CHECK)."""
    if (sell_listing_id is None) == (buy_request_id is None):
        raise ValueError(
            "reservation must reference exactly one of sell_listing_id / buy_request_id"
        )
    if sell_listing_id is not None:
        return SellTarget(sell_listing_id)
    return BuyTarget(buy_request_id)  # type: ignore[arg-type]


@dataclass
class Reservation:
    id: int
    target: TargetRef
    counterparty_user_id: int
    quantity: int
    status: str
    notes: str | None = None
    expires_at: datetime | None = None
    version: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def holds_stock(self, now: datetime) -> bool:
        """pending/confirmed and not past expires_at."""
        if ReservationStatus(self.status) not in ACTIVE_RESERVATION_STATUSES:
            return False
        return self.expires_at is None or self.expires_at > now


@dataclass
class ReservationDetail:
    """A reservation joined with the listing it targets.

    Shaped like a listing (pricing, currency, commodity_ticker, location_id)
    so the price resolver can run on it directly.
    """

    reservation: Reservation
    owner_user_id: int
    commodity_ticker: str
    location_id: str
    currency: str
    order_type: str
    pricing: Pricing


@dataclass
class TransitionResult:
    """Outcome of a status change; failures carry the error instead of raising."""

    success: bool
    reservation: Reservation | None = None
    error: str | None = None
    error_code: int | None = None
    http_status: int = 200

    @classmethod
    def ok(cls, reservation: Reservation) -> "TransitionResult":
        return cls(success=True, reservation=reservation)

    @classmethod
    def failed(cls, exc: AppError) -> "TransitionResult":
        return cls(
            success=False,
            error=exc.message,
            error_code=exc.code,
            http_status=exc.http_status,
        )
