"""PostgreSQL permission catalog repository implementation."""

from collections import defaultdict
from uuid import UUID

from psycopg import AsyncConnection

from tenantguard.domain.entities import Permission, PermissionCondition
from tenantguard.infrastructure.persistence.postgres.serialization import jsonb

_COLUMNS = "id, resource, action, scope, name, description, category, is_system"


def _row_to_permission(r: tuple) -> Permission:
    return Permission(
        id=r[0],
        resource=r[1],
        action=r[2],
        scope=r[3],
        name=r[4],
        description=r[5],
        category=r[6],
        is_system=r[7],
    )


class PostgresPermissionRepository:
    """Permission repository implementation. Conditions are loaded with each permission."""

    def __init__(self, conn: AsyncConnection) -> None:
        self._conn = conn

    async def _attach_conditions(self, permissions: list[Permission]) -> list[Permission]:
        if not permissions:
            return permissions
        cur = await self._conn.execute(
            "SELECT id, permission_id, condition_type, operator, value, description "
            "FROM permission_condition WHERE permission_id = ANY(%s)",
            ([p.id for p in permissions],),
        )
        by_permission: dict[UUID, list[PermissionCondition]] = defaultdict(list)
        for r in await cur.fetchall():
            by_permission[r[1]].append(
                PermissionCondition(
                    id=r[0],
                    permission_id=r[1],
                    condition_type=r[2],
                    operator=r[3],
                    value=r[4] or {},
                    description=r[5],
                )
            )
        for p in permissions:
            p.conditions = by_permission.get(p.id, [])
        return permissions

    async def get_by_id(self, permission_id: UUID) -> Permission | None:
        """Get permission by id."""
        cur = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM permission WHERE id = %s",
            (permission_id,),
        )
        r = await cur.fetchone()
        if not r:
            return None
        return (await self._attach_conditions([_row_to_permission(r)]))[0]

    async def get_by_key(self, resource: str, action: str, scope: str) -> Permission | None:
        """Get permission by (resource, action, scope)."""
        cur = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM permission "
            "WHERE resource = %s AND action = %s AND scope = %s",
            (resource, action, scope),
        )
        r = await cur.fetchone()
        if not r:
            return None
        return (await self._attach_conditions([_row_to_permission(r)]))[0]

    async def list_by_ids(self, permission_ids: list[UUID]) -> list[Permission]:
        """List permissions by ids; unknown ids are skipped."""
        if not permission_ids:
            return []
        cur = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM permission WHERE id = ANY(%s)",
            (list(permission_ids),),
        )
        rows = await cur.fetchall()
        return await self._attach_conditions([_row_to_permission(r) for r in rows])

    async def list_all(self) -> list[Permission]:
        """List the whole catalog."""
        cur = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM permission ORDER BY resource, action, scope"
        )
        rows = await cur.fetchall()
        return await self._attach_conditions([_row_to_permission(r) for r in rows])

    async def count(self) -> int:
        """Count catalog rows; fails when the table is not provisioned."""
        cur = await self._conn.execute("SELECT count(*) FROM permission")
        r = await cur.fetchone()
        return r[0]

    async def upsert(self, permission: Permission) -> Permission:
        """Insert by key, or refresh display metadata of the existing row."""
        cur = await self._conn.execute(
            "INSERT INTO permission (id, resource, action, scope, name, description, category, is_system) "
            "VALUES (%s, %s, %s, %s, %s, %s, %s, %s) "
            "ON CONFLICT (resource, action, scope) DO UPDATE SET "
            "name = EXCLUDED.name, description = EXCLUDED.description, category = EXCLUDED.category "
            "RETURNING id",
            (
                permission.id,
                permission.resource,
                permission.action,
                permission.scope,
                permission.name,
                permission.description,
                permission.category,
                permission.is_system,
            ),
        )
        r = await cur.fetchone()
        permission.id = r[0]
        for c in permission.conditions:
            await self._conn.execute(
                "INSERT INTO permission_condition (id, permission_id, condition_type, operator, value, description) "
                "VALUES (%s, %s, %s, %s, %s, %s) ON CONFLICT (id) DO NOTHING",
                (c.id, permission.id, c.condition_type, c.operator, jsonb(c.value), c.description),
            )
        return permission
