"""Assignment state changes shared by assign, remove, expire and rollback."""

from dataclasses import replace
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from tenantguard.domain.entities import CustomRole, PermissionCondition, UserCustomRole
from tenantguard.domain.exceptions import Conflict, NotFound, ValidationError


async def load_role(uow: Any, role_id: UUID) -> CustomRole:
    role = await uow.roles.get_by_id(role_id)
    if not role or role.is_deleted:
        raise NotFound("Role", str(role_id))
    return role


async def activate_assignment(
    uow: Any,
    *,
    user_id: str,
    role: CustomRole,
    actor_id: str,
    now: datetime,
    expires_at: datetime | None = None,
    conditions: list[PermissionCondition] | None = None,
    metadata: dict[str, Any] | None = None,
) -> UserCustomRole:
    """Create the assignment, or reactivate an inactive/expired one."""
    if not role.is_active:
        raise ValidationError(f"Role {role.name} is inactive")
    if expires_at is not None and expires_at <= now:
        raise ValidationError("Expiration must be in the future")

    existing = await uow.assignments.get(user_id, role.id)
    if existing and existing.is_effective(now):
        raise Conflict(f"User {user_id} already has role {role.name}")

    if existing:
        reactivated = replace(
            existing,
            is_active=True,
            assigned_at=now,
            assigned_by=actor_id,
            expires_at=expires_at,
            conditions=conditions,
            metadata=metadata or {},
            removed_by=None,
            removed_at=None,
        )
        await uow.assignments.update(reactivated)
        return reactivated

    assignment = UserCustomRole(
        id=uuid4(),
        user_id=user_id,
        role_id=role.id,
        assigned_at=now,
        assigned_by=actor_id,
        expires_at=expires_at,
        conditions=conditions,
        metadata=metadata or {},
    )
    await uow.assignments.create(assignment)
    return assignment


async def deactivate_assignment(
    uow: Any,
    *,
    user_id: str,
    role_id: UUID,
    actor_id: str,
    now: datetime,
) -> UserCustomRole:
    """Mark an active assignment removed; the record is kept for audit."""
    existing = await uow.assignments.get(user_id, role_id)
    if not existing or not existing.is_active:
        raise NotFound("Role assignment", f"{user_id}/{role_id}")
    removed = replace(existing, is_active=False, removed_by=actor_id, removed_at=now)
    await uow.assignments.update(removed)
    return removed
