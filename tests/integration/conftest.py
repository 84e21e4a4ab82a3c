"""Integration-test fixtures.

All integration tests share a single event-loop so that the module-level
SQLAlchemy async engine pool (created at import time) remains valid across
the entire test session.

Requires a running PostgreSQL DB with migrations applied (alembic upgrade
head); the whole directory is skipped when the database is unreachable.
Users and their synced inventory are inserted directly, and access tokens
are minted with the shared JWT secret the way the auth service does.
"""

import uuid
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy import text

from config.settings import settings
from src.cx_common.database import async_session_factory, engine
from src.main import app

_INSERT_USER_SQL = text("""
    INSERT INTO users (username) VALUES (:username) RETURNING id
""")

_INSERT_STORAGE_SQL = text("""
    INSERT INTO inventory_storages (user_id, storage_id, location_id, type, last_synced_at)
    VALUES (:user_id, :storage_id, :location_id, 'STORE', :synced_at)
    RETURNING id
""")

_INSERT_ITEM_SQL = text("""
    INSERT INTO inventory_items (storage_pk, commodity_ticker, quantity)
    VALUES (:storage_pk, :ticker, :quantity)
""")

MakeUser = Callable[..., Awaitable[dict[str, str]]]


def mint_token(user_id: int, roles: list[str]) -> str:
    return jwt.encode(
        {
            "sub": str(user_id),
            "type": "access",
            "roles": roles,
            "exp": datetime.now(UTC) + timedelta(minutes=30),
        },
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def database_ready() -> bool:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1 FROM reservations LIMIT 1"))
    except Exception as exc:  # noqa: BLE001
        pytest.skip(f"database not available: {exc}")
    return True


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def client(database_ready: bool) -> AsyncClient:  # type: ignore[override]
    """Session-scoped async HTTP client — keeps the engine pool alive."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture(loop_scope="session")
async def make_user(database_ready: bool) -> MakeUser:
    """Factory: insert a user (optionally with stock) and return auth headers."""

    async def _make(
        roles: list[str] | None = None,
        stock: dict[tuple[str, str], int] | None = None,
    ) -> dict[str, str]:
        async with async_session_factory() as session:
            result = await session.execute(
                _INSERT_USER_SQL, {"username": f"it_{uuid.uuid4().hex[:12]}"}
            )
            user_id = int(result.scalar_one())
            for (ticker, location_id), quantity in (stock or {}).items():
                storage = await session.execute(
                    _INSERT_STORAGE_SQL,
                    {
                        "user_id": user_id,
                        "storage_id": uuid.uuid4().hex,
                        "location_id": location_id,
                        "synced_at": datetime.now(UTC) - timedelta(hours=1),
                    },
                )
                await session.execute(
                    _INSERT_ITEM_SQL,
                    {"storage_pk": storage.scalar_one(), "ticker": ticker, "quantity": quantity},
                )
            await session.commit()
        token = mint_token(user_id, roles or ["member"])
        return {"Authorization": f"Bearer {token}", "X-User-Id": str(user_id)}

    return _make
