"""Append role history entries."""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

import structlog

from tenantguard.domain.entities import (
    AuditTrail,
    CustomRole,
    HistoryContext,
    RoleHistoryEntry,
    RoleSnapshot,
    Subject,
    UserSnapshot,
)
from tenantguard.domain.value_objects import RoleHistoryAction

logger = structlog.get_logger(__name__)

SYSTEM_ACTOR = Subject(id="system", first_name="System")


def user_snapshot(subject: Subject) -> UserSnapshot:
    return UserSnapshot(
        id=subject.id,
        first_name=subject.first_name,
        last_name=subject.last_name,
        email=subject.email,
        legacy_role=str(subject.legacy_role) if subject.legacy_role else None,
        department_id=subject.department_id,
    )


def role_snapshot(role: CustomRole) -> RoleSnapshot:
    return RoleSnapshot(
        id=role.id,
        name=role.name,
        description=role.description,
        priority=role.priority,
        is_system_role=role.is_system_role,
        permission_count=len(role.granted_permission_ids()),
    )


async def record_entry(
    uow: Any,
    *,
    action: RoleHistoryAction,
    role: CustomRole,
    admin: Subject,
    user_id: str | None = None,
    user_role_id: UUID | None = None,
    reason: str | None = None,
    context: HistoryContext | None = None,
    changes: dict[str, Any] | None = None,
    audit_trail: AuditTrail | None = None,
    timestamp: datetime | None = None,
) -> RoleHistoryEntry:
    """Snapshot the user, role and admin and append one entry inside ``uow``."""
    target = await uow.users.get(user_id) if user_id else None
    entry = RoleHistoryEntry(
        id=uuid4(),
        timestamp=timestamp or datetime.now(UTC),
        action=action,
        role_id=role.id,
        admin_id=admin.id,
        user_id=user_id,
        user_role_id=user_role_id,
        reason=reason,
        context=context or HistoryContext(),
        user=user_snapshot(target) if target else None,
        role=role_snapshot(role),
        admin=user_snapshot(admin),
        changes=changes,
        audit_trail=audit_trail or AuditTrail(),
        organization_id=role.organization_id or admin.organization_id,
        property_id=role.property_id,
        department_id=target.department_id if target else None,
    )
    await uow.history.add(entry)
    logger.info(
        "role_history_recorded",
        entry_id=str(entry.id),
        action=str(action),
        role_id=str(role.id),
        user_id=user_id,
        admin_id=admin.id,
        batch_id=entry.context.batch_id,
    )
    return entry


class RecordHistoryUseCase:
    """Append a prepared history entry in its own transaction."""

    def __init__(self, unit_of_work_factory: type) -> None:
        self._uow_factory = unit_of_work_factory

    async def execute(self, entry: RoleHistoryEntry) -> RoleHistoryEntry:
        async with self._uow_factory() as uow:
            return await uow.history.add(entry)
