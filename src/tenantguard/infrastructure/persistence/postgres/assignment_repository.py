"""PostgreSQL user role assignment repository implementation."""

from datetime import datetime
from uuid import UUID

from psycopg import AsyncConnection

from tenantguard.domain.entities import RolePermission, UserCustomRole
from tenantguard.infrastructure.persistence.postgres.serialization import (
    conditions_from_json,
    conditions_to_json,
    jsonb,
)

_COLUMNS = (
    "id, user_id, role_id, assigned_at, assigned_by, is_active, expires_at, "
    "conditions, metadata, removed_by, removed_at"
)


def _row_to_assignment(r: tuple) -> UserCustomRole:
    return UserCustomRole(
        id=r[0],
        user_id=r[1],
        role_id=r[2],
        assigned_at=r[3],
        assigned_by=r[4],
        is_active=r[5],
        expires_at=r[6],
        conditions=conditions_from_json(r[7]),
        metadata=r[8] or {},
        removed_by=r[9],
        removed_at=r[10],
    )


class PostgresAssignmentRepository:
    """Assignment repository implementation."""

    def __init__(self, conn: AsyncConnection) -> None:
        self._conn = conn

    async def get(self, user_id: str, role_id: UUID) -> UserCustomRole | None:
        """Get assignment for (user, role), active or not."""
        cur = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM user_custom_role WHERE user_id = %s AND role_id = %s",
            (user_id, role_id),
        )
        r = await cur.fetchone()
        return _row_to_assignment(r) if r else None

    async def list_for_user(self, user_id: str) -> list[UserCustomRole]:
        """All assignments of a user."""
        cur = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM user_custom_role WHERE user_id = %s ORDER BY assigned_at",
            (user_id,),
        )
        return [_row_to_assignment(r) for r in await cur.fetchall()]

    async def list_for_role(self, role_id: UUID, active_only: bool = True) -> list[UserCustomRole]:
        """Assignments of a role; active ones only by default."""
        q = f"SELECT {_COLUMNS} FROM user_custom_role WHERE role_id = %s"
        if active_only:
            q += " AND is_active"
        cur = await self._conn.execute(q + " ORDER BY assigned_at", (role_id,))
        return [_row_to_assignment(r) for r in await cur.fetchall()]

    async def list_role_grants(
        self, user_id: str, permission_id: UUID
    ) -> list[tuple[UserCustomRole, RolePermission]]:
        """Active assignments to live, active roles that grant ``permission_id``."""
        columns = ", ".join(f"ucr.{c.strip()}" for c in _COLUMNS.split(","))
        cur = await self._conn.execute(
            f"SELECT {columns}, rp.granted, rp.conditions "
            "FROM user_custom_role ucr "
            "JOIN custom_role cr ON cr.id = ucr.role_id "
            "JOIN role_permission rp ON rp.role_id = cr.id "
            "WHERE ucr.user_id = %s AND ucr.is_active "
            "AND cr.is_active AND cr.deleted_at IS NULL "
            "AND rp.permission_id = %s AND rp.granted "
            "ORDER BY cr.priority DESC, ucr.assigned_at",
            (user_id, permission_id),
        )
        grants = []
        for r in await cur.fetchall():
            assignment = _row_to_assignment(r)
            grants.append(
                (
                    assignment,
                    RolePermission(
                        role_id=assignment.role_id,
                        permission_id=permission_id,
                        granted=r[11],
                        conditions=conditions_from_json(r[12]),
                    ),
                )
            )
        return grants

    async def list_expired(self, now: datetime) -> list[UserCustomRole]:
        """Active assignments whose expiry has passed."""
        cur = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM user_custom_role "
            "WHERE is_active AND expires_at IS NOT NULL AND expires_at <= %s",
            (now,),
        )
        return [_row_to_assignment(r) for r in await cur.fetchall()]

    async def create(self, assignment: UserCustomRole) -> UserCustomRole:
        """Create assignment."""
        await self._conn.execute(
            f"INSERT INTO user_custom_role ({_COLUMNS}) "
            "VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)",
            (
                assignment.id,
                assignment.user_id,
                assignment.role_id,
                assignment.assigned_at,
                assignment.assigned_by,
                assignment.is_active,
                assignment.expires_at,
                conditions_to_json(assignment.conditions),
                jsonb(assignment.metadata),
                assignment.removed_by,
                assignment.removed_at,
            ),
        )
        return assignment

    async def update(self, assignment: UserCustomRole) -> None:
        """Update assignment state."""
        await self._conn.execute(
            "UPDATE user_custom_role SET assigned_at=%s, assigned_by=%s, is_active=%s, "
            "expires_at=%s, conditions=%s, metadata=%s, removed_by=%s, removed_at=%s "
            "WHERE id=%s",
            (
                assignment.assigned_at,
                assignment.assigned_by,
                assignment.is_active,
                assignment.expires_at,
                conditions_to_json(assignment.conditions),
                jsonb(assignment.metadata),
                assignment.removed_by,
                assignment.removed_at,
                assignment.id,
            ),
        )
