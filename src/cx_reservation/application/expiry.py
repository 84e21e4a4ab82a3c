"""Expiry sweeper — moves overdue pending/confirmed reservations to expired.

Availability already ignores reservations past expires_at; the sweeper
makes the status reflect that. Run periodically (e.g. from cron):

    python -m src.cx_reservation.application.expiry
"""

import asyncio
import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.cx_common.database import async_session_factory, engine
from src.cx_common.datetime_utils import utc_now
from src.cx_reservation.domain.repository import ReservationRepositoryProtocol
from src.cx_reservation.infrastructure.persistence import ReservationRepository

logger = logging.getLogger(__name__)


async def expire_stale_reservations(
    db: AsyncSession,
    now: datetime | None = None,
    repo: ReservationRepositoryProtocol | None = None,
) -> int:
    """Expire every active reservation with expires_at <= now; returns the count."""
    repo = repo or ReservationRepository()
    now = now or utc_now()
    try:
        count = await repo.expire_stale(db, now)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    logger.info("Expiry sweep at %s: %d reservations expired", now.isoformat(), count)
    return count


async def _run_once() -> int:
    try:
        async with async_session_factory() as session:
            return await expire_stale_reservations(session)
    finally:
        await engine.dispose()


def main() -> None:
    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    asyncio.run(_run_once())


if __name__ == "__main__":
    main()
