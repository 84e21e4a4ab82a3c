"""cx_reservation REST endpoints.

GET  /market/sell-listings            — other users' sell listings with stock left
GET  /market/buy-requests             — other users' buy requests still open
GET  /reservations                    — caller's reservations (owner and/or counterparty)
POST /reservations                    — reserve against a listing
GET  /reservations/{id}               — detail (parties only)
POST /reservations/{id}/status        — status transition
"""

from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from src.cx_common.database import get_db_session
from src.cx_common.enums import ListingKind, ReservationStatus
from src.cx_common.response import ApiResponse, error_response, success_response
from src.cx_gateway.auth.dependencies import CurrentUser, get_current_user
from src.cx_reservation.application.schemas import (
    CreateReservationRequest,
    ReservationResponse,
    UpdateStatusRequest,
)
from src.cx_reservation.application.service import ReservationService

market_router = APIRouter(prefix="/market", tags=["market"])
router = APIRouter(prefix="/reservations", tags=["reservations"])

_service = ReservationService()


# ---------------------------------------------------------------------------
# Market (eligible listings)
# ---------------------------------------------------------------------------


@market_router.get("/sell-listings")
async def list_eligible_sell_listings(
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    commodity_ticker: str | None = Query(None),
    location_id: str | None = Query(None),
) -> ApiResponse:
    result = await _service.list_eligible(
        db,
        current_user,
        ListingKind.SELL,
        commodity_ticker.upper() if commodity_ticker else None,
        location_id,
    )
    return success_response(result.model_dump(mode="json"), request)


@market_router.get("/buy-requests")
async def list_eligible_buy_requests(
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    commodity_ticker: str | None = Query(None),
    location_id: str | None = Query(None),
) -> ApiResponse:
    result = await _service.list_eligible(
        db,
        current_user,
        ListingKind.BUY,
        commodity_ticker.upper() if commodity_ticker else None,
        location_id,
    )
    return success_response(result.model_dump(mode="json"), request)


# ---------------------------------------------------------------------------
# Reservations
# ---------------------------------------------------------------------------


@router.get("")
async def list_reservations(
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    status: list[ReservationStatus] | None = Query(None),
    role: Literal["owner", "counterparty", "all"] = Query("all"),
) -> ApiResponse:
    result = await _service.list_reservations_for_user(db, current_user, status, role)
    return success_response(result.model_dump(mode="json"), request)


@router.post("", status_code=201)
async def create_reservation(
    body: CreateReservationRequest,
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.create_reservation(
        db, current_user, body.target(), body.quantity, body.notes
    )
    return success_response(result.model_dump(mode="json"), request)


@router.get("/{reservation_id}")
async def get_reservation(
    reservation_id: int,
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_reservation(db, current_user, reservation_id)
    return success_response(result.model_dump(mode="json"), request)


@router.post("/{reservation_id}/status", response_model=None)
async def update_reservation_status(
    reservation_id: int,
    body: UpdateStatusRequest,
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse | JSONResponse:
    result = await _service.update_status(
        db, current_user, reservation_id, body.status, body.notes
    )
    if not result.success:
        resp = error_response(result.error_code or 9002, result.error or "")
        resp.request_id = getattr(request.state, "request_id", resp.request_id)
        return JSONResponse(status_code=result.http_status, content=resp.model_dump())
    data = ReservationResponse.from_domain(result.reservation).model_dump(mode="json")  # type: ignore[arg-type]
    return success_response(data, request)
