"""Delete (soft) custom role use case."""

from datetime import UTC, datetime
from uuid import UUID

import structlog

from tenantguard.application.ports import AuditSink, PermissionChecker
from tenantguard.application.use_cases.history.record_history import record_entry
from tenantguard.application.use_cases.role.assignment_ops import load_role
from tenantguard.application.use_cases.role.tenant_scope import ensure_role_access, role_scope
from tenantguard.application.use_cases.side_effects import emit_audit
from tenantguard.domain.entities import AuditRecord, HistoryContext, Subject
from tenantguard.domain.exceptions import Conflict, PermissionDenied
from tenantguard.domain.value_objects import RoleHistoryAction

logger = structlog.get_logger(__name__)


class DeleteRoleUseCase:
    """Tombstone a role that has no active assignments."""

    def __init__(
        self,
        unit_of_work_factory: type,
        permission_checker: PermissionChecker,
        audit_sink: AuditSink | None = None,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self._permission_checker = permission_checker
        self._audit_sink = audit_sink

    async def execute(self, actor: Subject, role_id: UUID, reason: str | None = None) -> None:
        now = datetime.now(UTC)
        async with self._uow_factory() as uow:
            role = await load_role(uow, role_id)
            ensure_role_access(actor, role)
            if role.is_system_role:
                raise PermissionDenied("System roles cannot be deleted")
            allowed = await self._permission_checker.check(
                actor, "role", "delete", role_scope(role.property_id)
            )
            if not allowed:
                raise PermissionDenied("User cannot delete roles")

            active = [
                a for a in await uow.assignments.list_for_role(role.id) if a.is_effective(now)
            ]
            if active:
                raise Conflict(
                    f"Role '{role.name}' has {len(active)} active assignment(s)"
                )

            await uow.roles.soft_delete(role.id, now)
            await record_entry(
                uow,
                action=RoleHistoryAction.MODIFIED,
                role=role,
                admin=actor,
                reason=reason,
                context=HistoryContext(operation_type="role_deleted"),
                changes={"deleted_at": {"from": None, "to": now.isoformat()}},
                timestamp=now,
            )

        logger.info("role_deleted", role_id=str(role_id), actor_id=actor.id)
        await emit_audit(
            self._audit_sink,
            AuditRecord(
                actor_id=actor.id,
                action="DELETE",
                entity="custom_role",
                entity_id=str(role_id),
                timestamp=now,
                old_data={"name": role.name},
            ),
        )
