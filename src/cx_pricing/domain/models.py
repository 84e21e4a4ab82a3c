"""Pricing domain models — pure dataclasses, no business I/O."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from src.cx_common.enums import AdjustmentType
from src.cx_common.errors import PricingModeError


@dataclass(frozen=True)
class FixedPrice:
    amount: Decimal


@dataclass(frozen=True)
class DynamicPrice:
    price_list_code: str


Pricing = FixedPrice | DynamicPrice


def pricing_from_columns(price: Decimal | int | float | str, price_list_code: str | None) -> Pricing:
    """Build Pricing from the stored (price, price_list_code) pair.

    Dynamic pricing stores price = 0; fixed pricing needs price > 0.
    """
    amount = Decimal(str(price))
    if price_list_code:
        if amount != 0:
            raise PricingModeError("Price must be 0 when using a price list for dynamic pricing")
        return DynamicPrice(price_list_code.upper())
    if amount <= 0:
        raise PricingModeError("Price must be greater than 0 for fixed pricing")
    return FixedPrice(amount)


def pricing_to_columns(pricing: Pricing) -> tuple[Decimal, str | None]:
    if isinstance(pricing, DynamicPrice):
        return Decimal("0"), pricing.price_list_code
    return pricing.amount, None


@dataclass
class PriceList:
    code: str
    name: str
    currency: str
    default_location_id: str | None
    is_active: bool = True


@dataclass
class PriceAdjustment:
    id: int
    price_list_code: str | None  # None = any price list
    commodity_ticker: str | None  # None = any commodity
    location_id: str | None  # None = any location
    currency: str | None  # None = any currency
    adjustment_type: str  # percentage / fixed
    adjustment_value: Decimal
    priority: int = 0
    description: str | None = None
    is_active: bool = True
    effective_from: datetime | None = None
    effective_until: datetime | None = None
    created_by_user_id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def is_effective(self, now: datetime) -> bool:
        if not self.is_active:
            return False
        if self.effective_from is not None and self.effective_from > now:
            return False
        if self.effective_until is not None and self.effective_until <= now:
            return False
        return True

    def matches(
        self, price_list_code: str, commodity_ticker: str, location_id: str, currency: str
    ) -> bool:
        return (
            self.price_list_code in (None, price_list_code)
            and self.commodity_ticker in (None, commodity_ticker)
            and self.location_id in (None, location_id)
            and self.currency in (None, currency)
        )

    @property
    def is_percentage(self) -> bool:
        return self.adjustment_type == AdjustmentType.PERCENTAGE.value


@dataclass
class PriceBook:
    """Everything needed to price one commodity on one price list.

    base_prices maps location_id → base price for the commodity; only the
    requested and fallback locations need to be loaded.
    """

    price_list: PriceList
    commodity_ticker: str
    base_prices: dict[str, Decimal]
    adjustments: list[PriceAdjustment]


@dataclass(frozen=True)
class ResolvedPrice:
    price: Decimal
    currency: str
    is_fallback: bool = False
    price_location_id: str | None = None
    base_price: Decimal | None = None
    adjustment_id: int | None = None
