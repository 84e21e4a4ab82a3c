"""Listing domain models — pure dataclasses, no SQLAlchemy dependency.

A listing is either a SellListing (backed by synced inventory through its
limit policy) or a BuyRequest (a fixed requested quantity). Both share the
uniqueness key (owner, commodity, location, order_type, currency).
"""

from dataclasses import dataclass
from datetime import datetime
from typing import ClassVar

from src.cx_common.enums import ListingKind
from src.cx_inventory.domain.models import LimitPolicy
from src.cx_pricing.domain.models import Pricing


@dataclass
class SellListing:
    id: int
    owner_user_id: int
    commodity_ticker: str
    location_id: str
    currency: str
    order_type: str
    pricing: Pricing
    limit_policy: LimitPolicy
    created_at: datetime | None = None
    updated_at: datetime | None = None

    kind: ClassVar[ListingKind] = ListingKind.SELL


@dataclass
class BuyRequest:
    id: int
    owner_user_id: int
    commodity_ticker: str
    location_id: str
    currency: str
    order_type: str
    pricing: Pricing
    quantity: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    kind: ClassVar[ListingKind] = ListingKind.BUY


Listing = SellListing | BuyRequest


@dataclass(frozen=True)
class ListingKey:
    """Uniqueness key shared by both listing kinds."""

    owner_user_id: int
    commodity_ticker: str
    location_id: str
    order_type: str
    currency: str

    @classmethod
    def of(cls, listing: Listing) -> "ListingKey":
        return cls(
            owner_user_id=listing.owner_user_id,
            commodity_ticker=listing.commodity_ticker,
            location_id=listing.location_id,
            order_type=listing.order_type,
            currency=listing.currency,
        )
