"""Price Resolver.

Turns a listing's pricing configuration into one displayable price.

Fixed pricing returns the stored amount in the listing's currency.

Dynamic pricing looks the commodity up on the price list at the listing's
location. A location matches when the list carries a base price there;
the base is then refined by the single highest-precedence adjustment in
scope; adjustments never stack. Precedence is (priority asc, exact
location before wildcard, id asc), so location only breaks priority ties.
When the listing's location has no base price, the list's default
location is tried instead and the result is flagged as a fallback.
No match at either → None.
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Protocol

from src.cx_pricing.domain.models import (
    DynamicPrice,
    FixedPrice,
    PriceAdjustment,
    PriceBook,
    Pricing,
    ResolvedPrice,
)

_CENT = Decimal("0.01")
_HUNDRED = Decimal("100")


class PricedItem(Protocol):
    """Anything carrying pricing + where/what it prices (listings, views)."""

    pricing: Pricing
    currency: str
    commodity_ticker: str
    location_id: str


def round_price(value: Decimal) -> Decimal:
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


def _precedence(adj: PriceAdjustment, location_id: str) -> tuple[int, int, int]:
    return (adj.priority, 0 if adj.location_id == location_id else 1, adj.id)


def select_adjustment(
    adjustments: list[PriceAdjustment],
    price_list_code: str,
    commodity_ticker: str,
    location_id: str,
    currency: str,
    now: datetime,
) -> PriceAdjustment | None:
    candidates = [
        a
        for a in adjustments
        if a.is_effective(now)
        and a.matches(price_list_code, commodity_ticker, location_id, currency)
    ]
    if not candidates:
        return None
    return min(candidates, key=lambda a: _precedence(a, location_id))


def apply_adjustment(base: Decimal, adjustment: PriceAdjustment | None) -> Decimal:
    if adjustment is None:
        return round_price(base)
    if adjustment.is_percentage:
        return round_price(base * (1 + adjustment.adjustment_value / _HUNDRED))
    return round_price(base + adjustment.adjustment_value)


def price_at_location(book: PriceBook, location_id: str, now: datetime) -> ResolvedPrice | None:
    base = book.base_prices.get(location_id)
    if base is None:
        return None
    price_list = book.price_list
    adjustment = select_adjustment(
        book.adjustments,
        price_list.code,
        book.commodity_ticker,
        location_id,
        price_list.currency,
        now,
    )
    return ResolvedPrice(
        price=apply_adjustment(base, adjustment),
        currency=price_list.currency,
        price_location_id=location_id,
        base_price=base,
        adjustment_id=adjustment.id if adjustment else None,
    )


def resolve_price(item: PricedItem, book: PriceBook | None, now: datetime) -> ResolvedPrice | None:
    """Resolve the display price of `item`.

    `book` is ignored for fixed pricing and may be None when the price list
    does not exist, in which case dynamic pricing yields None.
    """
    pricing = item.pricing
    if isinstance(pricing, FixedPrice):
        return ResolvedPrice(price=pricing.amount, currency=item.currency)
    if not isinstance(pricing, DynamicPrice):
        raise TypeError(f"Unknown pricing: {pricing!r}")
    if book is None:
        return None

    resolved = price_at_location(book, item.location_id, now)
    if resolved is not None:
        return resolved

    fallback_location = book.price_list.default_location_id
    if not fallback_location or fallback_location == item.location_id:
        return None
    resolved = price_at_location(book, fallback_location, now)
    if resolved is None:
        return None
    return ResolvedPrice(
        price=resolved.price,
        currency=resolved.currency,
        is_fallback=True,
        price_location_id=resolved.price_location_id,
        base_price=resolved.base_price,
        adjustment_id=resolved.adjustment_id,
    )
