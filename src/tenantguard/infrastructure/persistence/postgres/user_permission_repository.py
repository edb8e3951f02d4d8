"""PostgreSQL direct user permission repository implementation."""

from uuid import UUID

from psycopg import AsyncConnection

from tenantguard.domain.entities import UserPermission
from tenantguard.infrastructure.persistence.postgres.serialization import (
    conditions_from_json,
    conditions_to_json,
    jsonb,
)

_COLUMNS = (
    "id, user_id, permission_id, granted, created_at, is_active, expires_at, "
    "conditions, granted_by, metadata"
)


def _row_to_user_permission(r: tuple) -> UserPermission:
    return UserPermission(
        id=r[0],
        user_id=r[1],
        permission_id=r[2],
        granted=r[3],
        created_at=r[4],
        is_active=r[5],
        expires_at=r[6],
        conditions=conditions_from_json(r[7]),
        granted_by=r[8],
        metadata=r[9] or {},
    )


class PostgresUserPermissionRepository:
    """User permission repository implementation."""

    def __init__(self, conn: AsyncConnection) -> None:
        self._conn = conn

    async def get(self, user_id: str, permission_id: UUID) -> UserPermission | None:
        """Get override for (user, permission)."""
        cur = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM user_permission WHERE user_id = %s AND permission_id = %s",
            (user_id, permission_id),
        )
        r = await cur.fetchone()
        return _row_to_user_permission(r) if r else None

    async def list_for_user(self, user_id: str) -> list[UserPermission]:
        """All overrides of a user."""
        cur = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM user_permission WHERE user_id = %s ORDER BY created_at",
            (user_id,),
        )
        return [_row_to_user_permission(r) for r in await cur.fetchall()]

    async def create(self, user_permission: UserPermission) -> UserPermission:
        """Create override."""
        await self._conn.execute(
            f"INSERT INTO user_permission ({_COLUMNS}) "
            "VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)",
            (
                user_permission.id,
                user_permission.user_id,
                user_permission.permission_id,
                user_permission.granted,
                user_permission.created_at,
                user_permission.is_active,
                user_permission.expires_at,
                conditions_to_json(user_permission.conditions),
                user_permission.granted_by,
                jsonb(user_permission.metadata),
            ),
        )
        return user_permission

    async def update(self, user_permission: UserPermission) -> None:
        """Update override."""
        await self._conn.execute(
            "UPDATE user_permission SET granted=%s, is_active=%s, expires_at=%s, "
            "conditions=%s, granted_by=%s, metadata=%s WHERE id=%s",
            (
                user_permission.granted,
                user_permission.is_active,
                user_permission.expires_at,
                conditions_to_json(user_permission.conditions),
                user_permission.granted_by,
                jsonb(user_permission.metadata),
                user_permission.id,
            ),
        )

    async def delete(self, user_permission_id: UUID) -> None:
        """Delete override."""
        await self._conn.execute(
            "DELETE FROM user_permission WHERE id = %s",
            (user_permission_id,),
        )
