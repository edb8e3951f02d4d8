"""Clone role, clone preview and lineage use cases."""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

import structlog

from tenantguard.application.dto.clone_dto import ClonePreview, CloneRoleInput, RoleLineage
from tenantguard.application.ports import AuditSink, PermissionChecker
from tenantguard.application.use_cases.history.record_history import record_entry
from tenantguard.application.use_cases.role.assignment_ops import load_role
from tenantguard.application.use_cases.role.create_role import MAX_PRIORITY, MIN_PRIORITY
from tenantguard.application.use_cases.role.tenant_scope import (
    ensure_role_access,
    resolve_tenant,
    role_scope,
)
from tenantguard.application.use_cases.side_effects import emit_audit
from tenantguard.domain.entities import (
    AuditRecord,
    CustomRole,
    HistoryContext,
    Permission,
    RolePermission,
    Subject,
)
from tenantguard.domain.exceptions import Conflict, NotFound, PermissionDenied, ValidationError
from tenantguard.domain.value_objects import RoleHistoryAction

logger = structlog.get_logger(__name__)


@dataclass
class _ClonePlan:
    preview: ClonePreview
    name: str
    priority: int
    organization_id: str | None
    property_id: str | None


def suggest_names(name: str, taken: set[str], count: int = 3) -> list[str]:
    """Alternative names not already taken in the target scope."""
    suggestions = []
    candidate_index = 1
    while len(suggestions) < count:
        suffix = " (Copy)" if candidate_index == 1 else f" (Copy {candidate_index})"
        candidate = f"{name}{suffix}"
        if candidate not in taken:
            suggestions.append(candidate)
        candidate_index += 1
    return suggestions


async def _plan_clone(uow: Any, actor: Subject, data: CloneRoleInput) -> _ClonePlan:
    source = await load_role(uow, data.source_role_id)
    ensure_role_access(actor, source)
    organization_id, property_id = resolve_tenant(
        actor,
        data.organization_id or source.organization_id,
        data.property_id if data.property_id is not None else source.property_id,
    )
    name = (data.name or "").strip()
    priority = data.priority if data.priority is not None else source.priority

    source_permissions = await uow.permissions.list_by_ids(
        sorted(source.granted_permission_ids())
    )
    kept: list[Permission] = []
    removed: list[Permission] = []
    for permission in sorted(source_permissions, key=lambda p: str(p.key)):
        (kept if data.filters.keeps(permission) else removed).append(permission)

    preview = ClonePreview(
        source_role=source,
        resulting_permissions=kept,
        removed_permissions=removed,
    )
    if not name:
        preview.validation_errors.append("Role name must not be empty")
    elif await uow.roles.get_by_name(name, organization_id, property_id):
        preview.validation_errors.append(f"Role '{name}' already exists in this scope")
        taken = {r.name for r in await uow.roles.list_for_tenant(organization_id, property_id)}
        preview.naming_conflicts.extend(suggest_names(name, taken))
    if not MIN_PRIORITY <= priority <= MAX_PRIORITY:
        preview.validation_errors.append(
            f"Priority must be between {MIN_PRIORITY} and {MAX_PRIORITY}"
        )

    source_ids = source.granted_permission_ids()
    outside = [pid for pid in data.filters.custom_selections if pid not in source_ids]
    if outside:
        preview.validation_warnings.append(
            f"{len(outside)} selected permission(s) are not granted by the source role"
        )
    if not kept:
        preview.validation_warnings.append("Clone will have no permissions")
    if source.is_system_role:
        preview.validation_warnings.append("Clone of a system role is a regular custom role")

    return _ClonePlan(
        preview=preview,
        name=name,
        priority=priority,
        organization_id=organization_id,
        property_id=property_id,
    )


class PreviewCloneUseCase:
    """Dry-run of a clone: same filtering and validation, nothing persisted."""

    def __init__(self, unit_of_work_factory: type) -> None:
        self._uow_factory = unit_of_work_factory

    async def execute(self, actor: Subject, data: CloneRoleInput) -> ClonePreview:
        async with self._uow_factory() as uow:
            plan = await _plan_clone(uow, actor, data)
        return plan.preview


class CloneRoleUseCase:
    """Create a new role from a filtered copy of another role's permissions."""

    def __init__(
        self,
        unit_of_work_factory: type,
        permission_checker: PermissionChecker,
        audit_sink: AuditSink | None = None,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self._permission_checker = permission_checker
        self._audit_sink = audit_sink

    async def execute(self, actor: Subject, data: CloneRoleInput) -> CustomRole:
        now = datetime.now(UTC)
        async with self._uow_factory() as uow:
            plan = await _plan_clone(uow, actor, data)
            preview = plan.preview
            if preview.naming_conflicts:
                raise Conflict(preview.validation_errors[0])
            if not preview.is_valid:
                raise ValidationError("; ".join(preview.validation_errors))
            allowed = await self._permission_checker.check(
                actor, "role", "create", role_scope(plan.property_id)
            )
            if not allowed:
                raise PermissionDenied("User cannot create roles")

            source = preview.source_role
            metadata = dict(data.metadata)
            if data.preserve_lineage:
                metadata["clone"] = {
                    "source_role_id": str(source.id),
                    "source_role_name": source.name,
                    "cloned_at": now.isoformat(),
                    "cloned_by": actor.id,
                }
            role_id = uuid4()
            role = CustomRole(
                id=role_id,
                name=plan.name,
                organization_id=plan.organization_id,
                property_id=plan.property_id,
                description=data.description or source.description,
                priority=plan.priority,
                metadata=metadata,
                cloned_from_id=source.id if data.preserve_lineage else None,
                created_at=now,
                updated_at=now,
                permissions=[
                    RolePermission(role_id=role_id, permission_id=p.id)
                    for p in preview.resulting_permissions
                ],
            )
            await uow.roles.create(role)
            await record_entry(
                uow,
                action=RoleHistoryAction.MODIFIED,
                role=role,
                admin=actor,
                context=HistoryContext(operation_type="role_cloned"),
                changes={
                    "cloned_from": {"to": str(source.id)},
                    "permissions": {
                        "kept": len(preview.resulting_permissions),
                        "removed": len(preview.removed_permissions),
                    },
                },
                timestamp=now,
            )

        logger.info(
            "role_cloned",
            role_id=str(role.id),
            source_role_id=str(source.id),
            actor_id=actor.id,
            permissions=len(role.permissions),
        )
        await emit_audit(
            self._audit_sink,
            AuditRecord(
                actor_id=actor.id,
                action="CLONE",
                entity="custom_role",
                entity_id=str(role.id),
                timestamp=now,
                new_data={"name": role.name, "source_role_id": str(source.id)},
            ),
        )
        return role


class GetRoleLineageUseCase:
    """Walk a role's clone ancestry and list its direct clones."""

    def __init__(self, unit_of_work_factory: type) -> None:
        self._uow_factory = unit_of_work_factory

    async def execute(self, actor: Subject, role_id: UUID) -> RoleLineage:
        async with self._uow_factory() as uow:
            role = await uow.roles.get_by_id(role_id, include_deleted=True)
            if not role:
                raise NotFound("Role", str(role_id))
            ensure_role_access(actor, role)

            ancestors: list[CustomRole] = []
            seen = {role.id}
            parent_id = role.cloned_from_id
            while parent_id and parent_id not in seen:
                parent = await uow.roles.get_by_id(parent_id, include_deleted=True)
                if not parent:
                    break
                ancestors.append(parent)
                seen.add(parent.id)
                parent_id = parent.cloned_from_id

            clones = await uow.roles.list_clones(role.id)
        return RoleLineage(role=role, ancestors=ancestors, clones=clones)
