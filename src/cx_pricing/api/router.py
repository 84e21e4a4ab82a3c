"""cx_pricing REST endpoints.

GET    /prices/effective                — resolved price for (list, commodity, location)
GET    /price-adjustments               — list adjustments (prices.manage)
POST   /price-adjustments               — create adjustment
GET    /price-adjustments/{id}          — adjustment detail
PATCH  /price-adjustments/{id}          — partial update
DELETE /price-adjustments/{id}          — delete
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.cx_common.database import get_db_session
from src.cx_common.response import ApiResponse, success_response
from src.cx_gateway.auth.dependencies import CurrentUser, get_current_user
from src.cx_pricing.application.schemas import (
    PriceAdjustmentCreateRequest,
    PriceAdjustmentUpdateRequest,
)
from src.cx_pricing.application.service import PriceService

prices_router = APIRouter(prefix="/prices", tags=["prices"])
adjustments_router = APIRouter(prefix="/price-adjustments", tags=["prices"])

_service = PriceService()


@prices_router.get("/effective")
async def get_effective_price(
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    price_list_code: str = Query(..., min_length=1),
    commodity_ticker: str = Query(..., min_length=1),
    location_id: str = Query(..., min_length=1),
) -> ApiResponse:
    result = await _service.get_effective_price(
        db, price_list_code, commodity_ticker.upper(), location_id
    )
    return success_response(result.model_dump(mode="json"), request)


@adjustments_router.get("")
async def list_adjustments(
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    price_list_code: str | None = Query(None),
    commodity_ticker: str | None = Query(None),
    active_only: bool = Query(False),
) -> ApiResponse:
    result = await _service.list_adjustments(
        db, current_user.roles, price_list_code, commodity_ticker, active_only
    )
    return success_response(result.model_dump(mode="json"), request)


@adjustments_router.post("", status_code=201)
async def create_adjustment(
    body: PriceAdjustmentCreateRequest,
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.create_adjustment(db, current_user.id, current_user.roles, body)
    return success_response(result.model_dump(mode="json"), request)


@adjustments_router.get("/{adjustment_id}")
async def get_adjustment(
    adjustment_id: int,
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_adjustment(db, current_user.roles, adjustment_id)
    return success_response(result.model_dump(mode="json"), request)


@adjustments_router.patch("/{adjustment_id}")
async def update_adjustment(
    adjustment_id: int,
    body: PriceAdjustmentUpdateRequest,
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.update_adjustment(
        db, current_user.id, current_user.roles, adjustment_id, body
    )
    return success_response(result.model_dump(mode="json"), request)


@adjustments_router.delete("/{adjustment_id}")
async def delete_adjustment(
    adjustment_id: int,
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    await _service.delete_adjustment(db, current_user.id, current_user.roles, adjustment_id)
    return success_response({"id": adjustment_id, "deleted": True}, request)
