"""Create custom role use case."""

from datetime import UTC, datetime
from uuid import UUID, uuid4

import structlog

from tenantguard.application.dto.role_dto import RoleCreateInput
from tenantguard.application.ports import AuditSink, PermissionChecker
from tenantguard.application.use_cases.history.record_history import record_entry
from tenantguard.application.use_cases.role.tenant_scope import resolve_tenant, role_scope
from tenantguard.application.use_cases.side_effects import emit_audit
from tenantguard.domain.entities import (
    AuditRecord,
    CustomRole,
    HistoryContext,
    RolePermission,
    Subject,
)
from tenantguard.domain.exceptions import Conflict, PermissionDenied, ValidationError
from tenantguard.domain.value_objects import RoleHistoryAction

logger = structlog.get_logger(__name__)

MIN_PRIORITY = 0
MAX_PRIORITY = 1000


def validate_role_fields(name: str | None, priority: int | None) -> None:
    if name is not None and not name.strip():
        raise ValidationError("Role name must not be empty")
    if priority is not None and not MIN_PRIORITY <= priority <= MAX_PRIORITY:
        raise ValidationError(f"Priority must be between {MIN_PRIORITY} and {MAX_PRIORITY}")


async def ensure_permissions_exist(uow, permission_ids: list[UUID]) -> None:
    """Referenced permission ids must all resolve in the catalog."""
    wanted = set(permission_ids)
    if not wanted:
        return
    found = {p.id for p in await uow.permissions.list_by_ids(list(wanted))}
    missing = wanted - found
    if missing:
        raise ValidationError(
            "Unknown permission ids: " + ", ".join(sorted(str(m) for m in missing))
        )


class CreateRoleUseCase:
    """Create a tenant custom role with its permission set."""

    def __init__(
        self,
        unit_of_work_factory: type,
        permission_checker: PermissionChecker,
        audit_sink: AuditSink | None = None,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self._permission_checker = permission_checker
        self._audit_sink = audit_sink

    async def execute(self, actor: Subject, data: RoleCreateInput) -> CustomRole:
        validate_role_fields(data.name, data.priority)
        organization_id, property_id = resolve_tenant(
            actor, data.organization_id, data.property_id
        )
        allowed = await self._permission_checker.check(
            actor, "role", "create", role_scope(property_id)
        )
        if not allowed:
            raise PermissionDenied("User cannot create roles")

        name = data.name.strip()
        now = datetime.now(UTC)
        async with self._uow_factory() as uow:
            if await uow.roles.get_by_name(name, organization_id, property_id):
                raise Conflict(f"Role '{name}' already exists in this scope")
            await ensure_permissions_exist(uow, data.permission_ids)

            role_id = uuid4()
            role = CustomRole(
                id=role_id,
                name=name,
                organization_id=organization_id,
                property_id=property_id,
                description=data.description,
                priority=data.priority,
                is_active=data.is_active,
                metadata=dict(data.metadata),
                created_at=now,
                updated_at=now,
                permissions=[
                    RolePermission(role_id=role_id, permission_id=pid)
                    for pid in dict.fromkeys(data.permission_ids)
                ],
            )
            await uow.roles.create(role)
            await record_entry(
                uow,
                action=RoleHistoryAction.MODIFIED,
                role=role,
                admin=actor,
                context=HistoryContext(operation_type="role_created"),
                changes={
                    "name": {"to": role.name},
                    "priority": {"to": role.priority},
                    "permission_ids": {"to": sorted(str(p) for p in role.granted_permission_ids())},
                },
                timestamp=now,
            )

        logger.info("role_created", role_id=str(role.id), name=role.name, actor_id=actor.id)
        await emit_audit(
            self._audit_sink,
            AuditRecord(
                actor_id=actor.id,
                action="CREATE",
                entity="custom_role",
                entity_id=str(role.id),
                timestamp=now,
                new_data={"name": role.name, "organization_id": organization_id},
            ),
        )
        return role
