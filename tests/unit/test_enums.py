"""Tests for cx_common.enums — values must match DB CHECK constraints."""

from src.cx_common.enums import (
    ACTIVE_RESERVATION_STATUSES,
    AdjustmentType,
    Currency,
    LimitMode,
    OrderType,
    ReservationStatus,
)


class TestEnumValues:
    def test_enums_are_str(self) -> None:
        assert isinstance(Currency.CIS, str)
        assert OrderType.PARTNER == "partner"

    def test_currencies(self) -> None:
        assert {c.value for c in Currency} == {"ICA", "CIS", "AIC", "NCC"}

    def test_limit_modes(self) -> None:
        assert {m.value for m in LimitMode} == {"none", "max_sell", "reserve"}

    def test_reservation_statuses(self) -> None:
        assert {s.value for s in ReservationStatus} == {
            "pending", "confirmed", "rejected", "fulfilled", "expired", "cancelled",
        }

    def test_adjustment_types(self) -> None:
        assert {t.value for t in AdjustmentType} == {"percentage", "fixed"}

    def test_active_statuses(self) -> None:
        assert ACTIVE_RESERVATION_STATUSES == (
            ReservationStatus.PENDING,
            ReservationStatus.CONFIRMED,
        )
