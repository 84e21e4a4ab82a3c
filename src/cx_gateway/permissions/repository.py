"""role_permissions lookups — raw SQL, read-only."""

from typing import Protocol

from sqlalchemy import bindparam, text
from sqlalchemy.ext.asyncio import AsyncSession

_ROLE_PERMISSIONS_SQL = text("""
    SELECT permission_id, allowed
    FROM role_permissions
    WHERE role_id IN :role_ids
""").bindparams(bindparam("role_ids", expanding=True))


class PermissionRepositoryProtocol(Protocol):
    async def list_role_permissions(
        self, db: AsyncSession, role_ids: list[str]
    ) -> list[tuple[str, bool]]: ...


class PermissionRepository:
    async def list_role_permissions(
        self, db: AsyncSession, role_ids: list[str]
    ) -> list[tuple[str, bool]]:
        if not role_ids:
            return []
        result = await db.execute(_ROLE_PERMISSIONS_SQL, {"role_ids": role_ids})
        return [(row.permission_id, row.allowed) for row in result.fetchall()]
