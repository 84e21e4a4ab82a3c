"""Commodity / location existence checks with a TTL cache.

Only positive answers are cached: a commodity added to the catalogue
becomes usable immediately, a removed one lingers until its entry expires
or `invalidate()` is called.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.cx_common.cache import TTLCache
from src.cx_common.errors import UnknownCommodityError, UnknownLocationError
from src.cx_listing.domain.repository import ReferenceDataRepositoryProtocol
from src.cx_listing.infrastructure.persistence import ReferenceDataRepository


class ReferenceDataService:
    def __init__(
        self,
        repo: ReferenceDataRepositoryProtocol | None = None,
        cache: TTLCache[bool] | None = None,
    ) -> None:
        self._repo: ReferenceDataRepositoryProtocol = repo or ReferenceDataRepository()
        self._cache: TTLCache[bool] = cache or TTLCache(settings.CACHE_TTL_SECONDS)

    async def require_commodity(self, db: AsyncSession, ticker: str) -> None:
        key = ("commodity", ticker)
        if self._cache.get(key):
            return
        if not await self._repo.commodity_exists(db, ticker):
            raise UnknownCommodityError(ticker)
        self._cache.set(key, True)

    async def require_location(self, db: AsyncSession, location_id: str) -> None:
        key = ("location", location_id)
        if self._cache.get(key):
            return
        if not await self._repo.location_exists(db, location_id):
            raise UnknownLocationError(location_id)
        self._cache.set(key, True)

    def invalidate(self) -> None:
        self._cache.clear()
