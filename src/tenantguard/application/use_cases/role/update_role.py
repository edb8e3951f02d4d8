"""Update custom role use case."""

from dataclasses import replace
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

import structlog

from tenantguard.application.dto.role_dto import RoleUpdateInput
from tenantguard.application.ports import AuditSink, DecisionCache, PermissionChecker
from tenantguard.application.use_cases.history.record_history import record_entry
from tenantguard.application.use_cases.role.assignment_ops import load_role
from tenantguard.application.use_cases.role.create_role import (
    ensure_permissions_exist,
    validate_role_fields,
)
from tenantguard.application.use_cases.role.tenant_scope import ensure_role_access, role_scope
from tenantguard.application.use_cases.side_effects import emit_audit, invalidate_subjects
from tenantguard.domain.entities import (
    AuditRecord,
    CustomRole,
    HistoryContext,
    RolePermission,
    Subject,
)
from tenantguard.domain.exceptions import Conflict, PermissionDenied
from tenantguard.domain.value_objects import RoleHistoryAction

logger = structlog.get_logger(__name__)


class UpdateRoleUseCase:
    """Update role fields and optionally replace its whole permission set atomically."""

    def __init__(
        self,
        unit_of_work_factory: type,
        permission_checker: PermissionChecker,
        decision_cache: DecisionCache | None = None,
        audit_sink: AuditSink | None = None,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self._permission_checker = permission_checker
        self._decision_cache = decision_cache
        self._audit_sink = audit_sink

    async def execute(self, actor: Subject, role_id: UUID, data: RoleUpdateInput) -> CustomRole:
        validate_role_fields(data.name, data.priority)
        now = datetime.now(UTC)
        async with self._uow_factory() as uow:
            role = await load_role(uow, role_id)
            ensure_role_access(actor, role)
            if role.is_system_role:
                raise PermissionDenied("System roles cannot be modified")
            allowed = await self._permission_checker.check(
                actor, "role", "update", role_scope(role.property_id)
            )
            if not allowed:
                raise PermissionDenied("User cannot update roles")

            changes: dict[str, Any] = {}
            updates: dict[str, Any] = {}
            if data.name is not None and data.name.strip() != role.name:
                name = data.name.strip()
                clash = await uow.roles.get_by_name(name, role.organization_id, role.property_id)
                if clash and clash.id != role.id:
                    raise Conflict(f"Role '{name}' already exists in this scope")
                updates["name"] = name
            for field_name in ("description", "priority", "is_active", "metadata"):
                value = getattr(data, field_name)
                if value is not None and value != getattr(role, field_name):
                    updates[field_name] = value
            for field_name, value in updates.items():
                changes[field_name] = {"from": getattr(role, field_name), "to": value}

            permissions = role.permissions
            if data.permission_ids is not None:
                await ensure_permissions_exist(uow, data.permission_ids)
                before = role.granted_permission_ids()
                after = set(data.permission_ids)
                if before != after:
                    permissions = [
                        RolePermission(role_id=role.id, permission_id=pid)
                        for pid in dict.fromkeys(data.permission_ids)
                    ]
                    await uow.roles.replace_permissions(role.id, permissions)
                    changes["permissions"] = {
                        "added": sorted(str(p) for p in after - before),
                        "removed": sorted(str(p) for p in before - after),
                    }

            if not changes:
                return role

            updated = replace(role, **updates, permissions=permissions, updated_at=now)
            await uow.roles.update(updated)
            await record_entry(
                uow,
                action=RoleHistoryAction.MODIFIED,
                role=updated,
                admin=actor,
                context=HistoryContext(operation_type="role_updated"),
                changes=changes,
                timestamp=now,
            )
            affected = [a.user_id for a in await uow.assignments.list_for_role(role.id)]

        logger.info(
            "role_updated",
            role_id=str(role.id),
            actor_id=actor.id,
            fields=sorted(changes),
            affected_users=len(affected),
        )
        await invalidate_subjects(self._decision_cache, affected)
        await emit_audit(
            self._audit_sink,
            AuditRecord(
                actor_id=actor.id,
                action="UPDATE",
                entity="custom_role",
                entity_id=str(role.id),
                timestamp=now,
                old_data={k: str(v["from"]) for k, v in changes.items() if "from" in v},
                new_data={k: str(v["to"]) for k, v in changes.items() if "to" in v},
            ),
        )
        return updated
