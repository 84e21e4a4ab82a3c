"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth/Permission
  2xxx: Listing
  3xxx: Reservation
  4xxx: Pricing
  5xxx: Reference data (commodities, locations)
  9xxx: System
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Auth/Permission ---

class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1001, "Invalid or expired token", 401)


class PermissionDeniedError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(1002, detail, 403)


# --- 2xxx: Listing ---

class ListingNotFoundError(AppError):
    def __init__(self, kind: str, listing_id: int) -> None:
        super().__init__(2001, f"{kind.capitalize()} listing not found: {listing_id}", 404)


class DuplicateListingError(AppError):
    def __init__(
        self, kind: str, commodity_ticker: str, location_id: str, order_type: str, currency: str
    ) -> None:
        super().__init__(
            2002,
            f"{kind.capitalize()} listing already exists for {commodity_ticker} at {location_id} "
            f"({order_type}, {currency}). Update the existing listing instead.",
            400,
        )


class PricingModeError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(2003, detail, 400)


class InvalidLimitPolicyError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(2004, detail, 400)


class InvalidQuantityError(AppError):
    def __init__(self, quantity: int) -> None:
        super().__init__(2005, f"Quantity must be greater than 0, got {quantity}", 400)


# --- 3xxx: Reservation ---

class ReservationNotFoundError(AppError):
    def __init__(self, reservation_id: int) -> None:
        super().__init__(3001, f"Reservation not found: {reservation_id}", 404)


class SelfReservationError(AppError):
    def __init__(self) -> None:
        super().__init__(3002, "You cannot reserve against your own listing", 400)


class InsufficientQuantityError(AppError):
    def __init__(self, requested: int, available: int) -> None:
        super().__init__(
            3003,
            f"Insufficient quantity: requested {requested}, available {available}",
            422,
        )


class InvalidTransitionError(AppError):
    def __init__(self, current: str, requested: str) -> None:
        super().__init__(3004, f"Cannot change status from {current} to {requested}", 409)


class NotReservationPartyError(AppError):
    def __init__(self) -> None:
        super().__init__(3005, "You are not authorized to modify this reservation", 403)


class ReservationTargetMissingError(AppError):
    def __init__(self, reservation_id: int) -> None:
        super().__init__(
            3006, f"Associated listing not found for reservation {reservation_id}", 404
        )


class ConcurrentModificationError(AppError):
    def __init__(self, reservation_id: int) -> None:
        super().__init__(
            3007, f"Reservation {reservation_id} was modified concurrently, retry", 409
        )


# --- 4xxx: Pricing ---

class UnknownPriceListError(AppError):
    def __init__(self, price_list_code: str) -> None:
        super().__init__(4001, f"Price list {price_list_code} not found", 400)


class PriceAdjustmentNotFoundError(AppError):
    def __init__(self, adjustment_id: int) -> None:
        super().__init__(4002, f"Price adjustment not found: {adjustment_id}", 404)


class InvalidAdjustmentWindowError(AppError):
    def __init__(self) -> None:
        super().__init__(4003, "effective_until must be after effective_from", 400)


# --- 5xxx: Reference data ---

class UnknownCommodityError(AppError):
    def __init__(self, ticker: str) -> None:
        super().__init__(5001, f"Commodity {ticker} not found", 400)


class UnknownLocationError(AppError):
    def __init__(self, location_id: str) -> None:
        super().__init__(5002, f"Location {location_id} not found", 400)


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
