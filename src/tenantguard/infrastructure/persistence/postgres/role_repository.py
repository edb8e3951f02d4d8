"""PostgreSQL custom role repository implementation."""

from collections import defaultdict
from datetime import datetime
from uuid import UUID

from psycopg import AsyncConnection

from tenantguard.application.dto.role_dto import RoleQuery
from tenantguard.domain.entities import CustomRole, RolePermission
from tenantguard.infrastructure.persistence.postgres.serialization import (
    conditions_from_json,
    conditions_to_json,
    jsonb,
)

_COLUMNS = (
    "id, name, organization_id, property_id, description, priority, is_system_role, "
    "is_active, metadata, cloned_from_id, created_at, updated_at, deleted_at"
)

_SORT_COLUMNS = {"name": "name", "priority": "priority", "created_at": "created_at"}


def _row_to_role(r: tuple) -> CustomRole:
    return CustomRole(
        id=r[0],
        name=r[1],
        organization_id=r[2],
        property_id=r[3],
        description=r[4],
        priority=r[5],
        is_system_role=r[6],
        is_active=r[7],
        metadata=r[8] or {},
        cloned_from_id=r[9],
        created_at=r[10],
        updated_at=r[11],
        deleted_at=r[12],
    )


class PostgresRoleRepository:
    """Custom role repository implementation."""

    def __init__(self, conn: AsyncConnection) -> None:
        self._conn = conn

    async def _attach_permissions(self, roles: list[CustomRole]) -> list[CustomRole]:
        if not roles:
            return roles
        cur = await self._conn.execute(
            "SELECT role_id, permission_id, granted, conditions "
            "FROM role_permission WHERE role_id = ANY(%s)",
            ([r.id for r in roles],),
        )
        by_role: dict[UUID, list[RolePermission]] = defaultdict(list)
        for r in await cur.fetchall():
            by_role[r[0]].append(
                RolePermission(
                    role_id=r[0],
                    permission_id=r[1],
                    granted=r[2],
                    conditions=conditions_from_json(r[3]),
                )
            )
        for role in roles:
            role.permissions = by_role.get(role.id, [])
        return roles

    async def _fetch(self, q: str, params: tuple) -> list[CustomRole]:
        cur = await self._conn.execute(q, params)
        rows = await cur.fetchall()
        return await self._attach_permissions([_row_to_role(r) for r in rows])

    async def get_by_id(self, role_id: UUID, include_deleted: bool = False) -> CustomRole | None:
        """Get role by id."""
        q = f"SELECT {_COLUMNS} FROM custom_role WHERE id = %s"
        if not include_deleted:
            q += " AND deleted_at IS NULL"
        roles = await self._fetch(q, (role_id,))
        return roles[0] if roles else None

    async def get_by_name(
        self,
        name: str,
        organization_id: str | None,
        property_id: str | None,
    ) -> CustomRole | None:
        """Get live role by name within one (organization, property) scope."""
        roles = await self._fetch(
            f"SELECT {_COLUMNS} FROM custom_role "
            "WHERE lower(name) = lower(%s) "
            "AND organization_id IS NOT DISTINCT FROM %s "
            "AND property_id IS NOT DISTINCT FROM %s "
            "AND deleted_at IS NULL",
            (name, organization_id, property_id),
        )
        return roles[0] if roles else None

    async def list_for_tenant(
        self, organization_id: str | None, property_id: str | None = None
    ) -> list[CustomRole]:
        """Live roles of an organization, narrowed to a property when given."""
        q = (
            f"SELECT {_COLUMNS} FROM custom_role "
            "WHERE deleted_at IS NULL AND organization_id IS NOT DISTINCT FROM %s"
        )
        params: tuple = (organization_id,)
        if property_id:
            q += " AND (property_id = %s OR property_id IS NULL)"
            params += (property_id,)
        return await self._fetch(q + " ORDER BY name", params)

    async def list_clones(self, role_id: UUID) -> list[CustomRole]:
        """Live roles cloned directly from ``role_id``."""
        return await self._fetch(
            f"SELECT {_COLUMNS} FROM custom_role "
            "WHERE cloned_from_id = %s AND deleted_at IS NULL ORDER BY created_at",
            (role_id,),
        )

    async def create(self, role: CustomRole) -> CustomRole:
        """Create role together with its permission set."""
        await self._conn.execute(
            f"INSERT INTO custom_role ({_COLUMNS}) "
            "VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)",
            (
                role.id,
                role.name,
                role.organization_id,
                role.property_id,
                role.description,
                role.priority,
                role.is_system_role,
                role.is_active,
                jsonb(role.metadata),
                role.cloned_from_id,
                role.created_at,
                role.updated_at,
                role.deleted_at,
            ),
        )
        await self._insert_permissions(role.permissions)
        return role

    async def update(self, role: CustomRole) -> None:
        """Update role fields (not its permission set)."""
        await self._conn.execute(
            "UPDATE custom_role SET name=%s, description=%s, priority=%s, is_active=%s, "
            "metadata=%s, updated_at=%s WHERE id=%s",
            (
                role.name,
                role.description,
                role.priority,
                role.is_active,
                jsonb(role.metadata),
                role.updated_at,
                role.id,
            ),
        )

    async def soft_delete(self, role_id: UUID, deleted_at: datetime) -> None:
        """Tombstone role."""
        await self._conn.execute(
            "UPDATE custom_role SET deleted_at = %s, is_active = false, updated_at = %s "
            "WHERE id = %s",
            (deleted_at, deleted_at, role_id),
        )

    async def replace_permissions(
        self, role_id: UUID, permissions: list[RolePermission]
    ) -> None:
        """Replace the full permission set; atomic within the unit of work."""
        await self._conn.execute("DELETE FROM role_permission WHERE role_id = %s", (role_id,))
        await self._insert_permissions(permissions)

    async def _insert_permissions(self, permissions: list[RolePermission]) -> None:
        if not permissions:
            return
        async with self._conn.cursor() as cur:
            await cur.executemany(
                "INSERT INTO role_permission (role_id, permission_id, granted, conditions) "
                "VALUES (%s, %s, %s, %s)",
                [
                    (rp.role_id, rp.permission_id, rp.granted, conditions_to_json(rp.conditions))
                    for rp in permissions
                ],
            )

    async def list(self, query: RoleQuery) -> tuple[list[CustomRole], int]:
        """Filtered, sorted page of live roles plus the total match count."""
        conditions = ["deleted_at IS NULL"]
        params: list[object] = []

        if not (query.unscoped and query.organization_id is None):
            tenant = ["organization_id IS NOT DISTINCT FROM %s"]
            params.append(query.organization_id)
            if query.property_id:
                tenant.append("(property_id = %s OR property_id IS NULL)")
                params.append(query.property_id)
            tenant_clause = "(" + " AND ".join(tenant) + ")"
            if query.include_system_roles:
                tenant_clause = f"({tenant_clause} OR is_system_role)"
            conditions.append(tenant_clause)
        if not query.include_system_roles:
            conditions.append("NOT is_system_role")
        if query.is_active is not None:
            conditions.append("is_active = %s")
            params.append(query.is_active)
        if query.search:
            conditions.append("(name ILIKE %s OR description ILIKE %s)")
            pattern = f"%{query.search}%"
            params.extend([pattern, pattern])

        where = " WHERE " + " AND ".join(conditions)
        cur = await self._conn.execute(f"SELECT count(*) FROM custom_role{where}", tuple(params))
        total = (await cur.fetchone())[0]

        order_column = _SORT_COLUMNS.get(query.sort_by, "name")
        direction = "DESC" if query.sort_direction == "desc" else "ASC"
        q = (
            f"SELECT {_COLUMNS} FROM custom_role{where} "
            f"ORDER BY {order_column} {direction}, id LIMIT %s OFFSET %s"
        )
        offset = (query.page - 1) * query.limit
        items = await self._fetch(q, tuple(params) + (query.limit, offset))
        return items, total
