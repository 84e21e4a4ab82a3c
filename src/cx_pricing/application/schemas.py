# src/cx_pricing/application/schemas.py
from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from src.cx_common.datetime_utils import ensure_utc
from src.cx_common.enums import Currency
from src.cx_pricing.domain.models import PriceAdjustment, ResolvedPrice


def _upper_or_none(v: str | None) -> str | None:
    if v is None:
        return None
    v = v.strip()
    return v.upper() if v else None


class EffectivePriceResponse(BaseModel):
    price_list_code: str
    commodity_ticker: str
    location_id: str
    price: Decimal | None
    currency: str | None
    is_fallback: bool = False
    price_location_id: str | None = None
    base_price: Decimal | None = None
    adjustment_id: int | None = None

    @classmethod
    def from_resolved(
        cls, price_list_code: str, commodity_ticker: str, location_id: str,
        resolved: ResolvedPrice | None,
    ) -> "EffectivePriceResponse":
        if resolved is None:
            return cls(
                price_list_code=price_list_code,
                commodity_ticker=commodity_ticker,
                location_id=location_id,
                price=None,
                currency=None,
            )
        return cls(
            price_list_code=price_list_code,
            commodity_ticker=commodity_ticker,
            location_id=location_id,
            price=resolved.price,
            currency=resolved.currency,
            is_fallback=resolved.is_fallback,
            price_location_id=resolved.price_location_id,
            base_price=resolved.base_price,
            adjustment_id=resolved.adjustment_id,
        )


class PriceAdjustmentCreateRequest(BaseModel):
    price_list_code: str | None = None
    commodity_ticker: str | None = None
    location_id: str | None = None
    currency: Currency | None = None
    adjustment_type: Literal["percentage", "fixed"]
    adjustment_value: Decimal
    priority: int = 0
    description: str | None = Field(None, max_length=500)
    is_active: bool = True
    effective_from: datetime | None = None
    effective_until: datetime | None = None

    @field_validator("price_list_code", "commodity_ticker")
    @classmethod
    def normalize_code(cls, v: str | None) -> str | None:
        return _upper_or_none(v)

    @field_validator("effective_from", "effective_until")
    @classmethod
    def assume_utc(cls, v: datetime | None) -> datetime | None:
        return ensure_utc(v)

    @model_validator(mode="after")
    def check_window(self) -> "PriceAdjustmentCreateRequest":
        if (
            self.effective_from is not None
            and self.effective_until is not None
            and self.effective_until <= self.effective_from
        ):
            raise ValueError("effective_until must be after effective_from")
        return self


class PriceAdjustmentUpdateRequest(BaseModel):
    """Partial update: only fields present in the body are changed.

    Scope fields may be set to null explicitly to widen them to "any".
    """

    price_list_code: str | None = None
    commodity_ticker: str | None = None
    location_id: str | None = None
    currency: Currency | None = None
    adjustment_type: Literal["percentage", "fixed"] | None = None
    adjustment_value: Decimal | None = None
    priority: int | None = None
    description: str | None = Field(None, max_length=500)
    is_active: bool | None = None
    effective_from: datetime | None = None
    effective_until: datetime | None = None

    @field_validator("price_list_code", "commodity_ticker")
    @classmethod
    def normalize_code(cls, v: str | None) -> str | None:
        return _upper_or_none(v)

    @field_validator("effective_from", "effective_until")
    @classmethod
    def assume_utc(cls, v: datetime | None) -> datetime | None:
        return ensure_utc(v)

    @model_validator(mode="after")
    def check_not_null(self) -> "PriceAdjustmentUpdateRequest":
        for name in ("adjustment_type", "adjustment_value", "priority", "is_active"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class PriceAdjustmentResponse(BaseModel):
    id: int
    price_list_code: str | None
    commodity_ticker: str | None
    location_id: str | None
    currency: str | None
    adjustment_type: str
    adjustment_value: Decimal
    priority: int
    description: str | None
    is_active: bool
    effective_from: datetime | None
    effective_until: datetime | None
    created_by_user_id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_domain(cls, adj: PriceAdjustment) -> "PriceAdjustmentResponse":
        return cls(
            id=adj.id,
            price_list_code=adj.price_list_code,
            commodity_ticker=adj.commodity_ticker,
            location_id=adj.location_id,
            currency=adj.currency,
            adjustment_type=adj.adjustment_type,
            adjustment_value=adj.adjustment_value,
            priority=adj.priority,
            description=adj.description,
            is_active=adj.is_active,
            effective_from=adj.effective_from,
            effective_until=adj.effective_until,
            created_by_user_id=adj.created_by_user_id,
            created_at=adj.created_at,
            updated_at=adj.updated_at,
        )


class PriceAdjustmentListResponse(BaseModel):
    items: list[PriceAdjustmentResponse]
