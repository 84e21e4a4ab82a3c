"""Role-based permission checks.

A user's roles (from the JWT) map to permissions through role_permissions.
Aggregation across roles: a permission is granted if some role allows it
and no role explicitly denies it (allowed=false wins).

Resolved permission maps are cached per sorted role set; call
`invalidate()` after editing role_permissions.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.cx_common.cache import TTLCache
from src.cx_common.enums import OrderType
from src.cx_gateway.permissions.repository import (
    PermissionRepository,
    PermissionRepositoryProtocol,
)

ORDERS_POST_INTERNAL = "orders.post_internal"
ORDERS_POST_PARTNER = "orders.post_partner"
RESERVATIONS_PLACE_INTERNAL = "reservations.place_internal"
RESERVATIONS_PLACE_PARTNER = "reservations.place_partner"
PRICES_MANAGE = "prices.manage"


def listing_write_permission(order_type: OrderType) -> str:
    return ORDERS_POST_PARTNER if order_type == OrderType.PARTNER else ORDERS_POST_INTERNAL


def reservation_place_permission(order_type: OrderType) -> str:
    if order_type == OrderType.PARTNER:
        return RESERVATIONS_PLACE_PARTNER
    return RESERVATIONS_PLACE_INTERNAL


def _cache_key(role_ids: tuple[str, ...] | list[str]) -> str:
    return ",".join(sorted(role_ids))


class PermissionService:
    def __init__(
        self,
        repo: PermissionRepositoryProtocol | None = None,
        cache: TTLCache[dict[str, bool]] | None = None,
    ) -> None:
        self._repo: PermissionRepositoryProtocol = repo or PermissionRepository()
        self._cache: TTLCache[dict[str, bool]] = cache or TTLCache(settings.CACHE_TTL_SECONDS)

    async def get_permissions(
        self, db: AsyncSession, role_ids: tuple[str, ...] | list[str]
    ) -> dict[str, bool]:
        key = _cache_key(role_ids)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        permissions: dict[str, bool] = {}
        for permission_id, allowed in await self._repo.list_role_permissions(
            db, sorted(role_ids)
        ):
            if permission_id not in permissions:
                permissions[permission_id] = allowed
            elif not allowed:
                permissions[permission_id] = False  # explicit deny wins

        self._cache.set(key, permissions)
        return permissions

    async def has_permission(
        self, db: AsyncSession, role_ids: tuple[str, ...] | list[str], permission_id: str
    ) -> bool:
        permissions = await self.get_permissions(db, role_ids)
        return permissions.get(permission_id) is True

    def invalidate(self) -> None:
        self._cache.clear()


_default_service = PermissionService()


def get_permission_service() -> PermissionService:
    """Module-level default used by application services."""
    return _default_service
