"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from config.settings import settings
from src.cx_common.database import engine
from src.cx_common.errors import AppError
from src.cx_common.response import error_response
from src.cx_gateway.middleware.request_log import RequestLogMiddleware
from src.cx_listing.api.router import buy_router, sell_router
from src.cx_pricing.api.router import adjustments_router, prices_router
from src.cx_reservation.api.router import market_router
from src.cx_reservation.api.router import router as reservation_router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify the DB connection. Shutdown: dispose the pool."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    yield
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


app.include_router(sell_router, prefix="/api/v1")
app.include_router(buy_router, prefix="/api/v1")
app.include_router(market_router, prefix="/api/v1")
app.include_router(reservation_router, prefix="/api/v1")
app.include_router(prices_router, prefix="/api/v1")
app.include_router(adjustments_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
