"""Global enums — must match DB CHECK constraints exactly."""

from enum import Enum


class Currency(str, Enum):
    ICA = "ICA"
    CIS = "CIS"
    AIC = "AIC"
    NCC = "NCC"


class OrderType(str, Enum):
    """Audience of a listing: members only, or trade partners too."""
    INTERNAL = "internal"
    PARTNER = "partner"


class LimitMode(str, Enum):
    NONE = "none"
    MAX_SELL = "max_sell"
    RESERVE = "reserve"


class ListingKind(str, Enum):
    SELL = "sell"
    BUY = "buy"


class ReservationStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    FULFILLED = "fulfilled"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class PartyRole(str, Enum):
    OWNER = "owner"
    COUNTERPARTY = "counterparty"


class AdjustmentType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


# Statuses whose quantity still holds listing stock
ACTIVE_RESERVATION_STATUSES: tuple[ReservationStatus, ...] = (
    ReservationStatus.PENDING,
    ReservationStatus.CONFIRMED,
)
