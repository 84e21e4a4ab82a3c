"""cx_listing REST endpoints (owner side).

GET    /sell-listings            — caller's sell listings, enriched
POST   /sell-listings            — create
GET    /sell-listings/{id}       — detail
PATCH  /sell-listings/{id}       — partial update
DELETE /sell-listings/{id}       — delete (cancels active reservations)

/buy-requests mirrors the same five routes.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.cx_common.database import get_db_session
from src.cx_common.enums import ListingKind
from src.cx_common.response import ApiResponse, success_response
from src.cx_gateway.auth.dependencies import CurrentUser, get_current_user
from src.cx_listing.application.schemas import (
    BuyRequestCreateRequest,
    BuyRequestUpdateRequest,
    SellListingCreateRequest,
    SellListingUpdateRequest,
)
from src.cx_listing.application.service import ListingService

sell_router = APIRouter(prefix="/sell-listings", tags=["sell-listings"])
buy_router = APIRouter(prefix="/buy-requests", tags=["buy-requests"])

_service = ListingService()


# ---------------------------------------------------------------------------
# Sell listings
# ---------------------------------------------------------------------------


@sell_router.get("")
async def list_sell_listings(
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.list_sell_listings(db, current_user)
    return success_response(result.model_dump(mode="json"), request)


@sell_router.post("", status_code=201)
async def create_sell_listing(
    body: SellListingCreateRequest,
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.create_sell_listing(db, current_user, body)
    return success_response(result.model_dump(mode="json"), request)


@sell_router.get("/{listing_id}")
async def get_sell_listing(
    listing_id: int,
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_sell_listing(db, current_user, listing_id)
    return success_response(result.model_dump(mode="json"), request)


@sell_router.patch("/{listing_id}")
async def update_sell_listing(
    listing_id: int,
    body: SellListingUpdateRequest,
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.update_sell_listing(db, current_user, listing_id, body)
    return success_response(result.model_dump(mode="json"), request)


@sell_router.delete("/{listing_id}")
async def delete_sell_listing(
    listing_id: int,
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.delete_listing(db, current_user, ListingKind.SELL, listing_id)
    return success_response(result.model_dump(mode="json"), request)


# ---------------------------------------------------------------------------
# Buy requests
# ---------------------------------------------------------------------------


@buy_router.get("")
async def list_buy_requests(
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.list_buy_requests(db, current_user)
    return success_response(result.model_dump(mode="json"), request)


@buy_router.post("", status_code=201)
async def create_buy_request(
    body: BuyRequestCreateRequest,
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.create_buy_request(db, current_user, body)
    return success_response(result.model_dump(mode="json"), request)


@buy_router.get("/{listing_id}")
async def get_buy_request(
    listing_id: int,
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_buy_request(db, current_user, listing_id)
    return success_response(result.model_dump(mode="json"), request)


@buy_router.patch("/{listing_id}")
async def update_buy_request(
    listing_id: int,
    body: BuyRequestUpdateRequest,
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.update_buy_request(db, current_user, listing_id, body)
    return success_response(result.model_dump(mode="json"), request)


@buy_router.delete("/{listing_id}")
async def delete_buy_request(
    listing_id: int,
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.delete_listing(db, current_user, ListingKind.BUY, listing_id)
    return success_response(result.model_dump(mode="json"), request)
