"""Remove custom role from user use case."""

from datetime import UTC, datetime

import structlog

from tenantguard.application.dto.role_dto import RemovalInput
from tenantguard.application.ports import AuditSink, DecisionCache, PermissionChecker
from tenantguard.application.use_cases.history.record_history import record_entry
from tenantguard.application.use_cases.role.assignment_ops import deactivate_assignment
from tenantguard.application.use_cases.role.tenant_scope import ensure_role_access, role_scope
from tenantguard.application.use_cases.side_effects import emit_audit, invalidate_subjects
from tenantguard.domain.entities import AuditRecord, HistoryContext, Subject, UserCustomRole
from tenantguard.domain.exceptions import NotFound, PermissionDenied
from tenantguard.domain.value_objects import RoleHistoryAction

logger = structlog.get_logger(__name__)


class RemoveRoleUseCase:
    """Deactivate a user's role assignment; the record stays for audit."""

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

    async def execute(
        self,
        actor: Subject,
        data: RemovalInput,
        *,
        action: RoleHistoryAction = RoleHistoryAction.REMOVED,
        history_context: HistoryContext | None = None,
    ) -> UserCustomRole:
        now = datetime.now(UTC)
        async with self._uow_factory() as uow:
            # deleted roles can still have assignments removed
            role = await uow.roles.get_by_id(data.role_id, include_deleted=True)
            if not role:
                raise NotFound("Role", str(data.role_id))
            ensure_role_access(actor, role)
            allowed = await self._permission_checker.check(
                actor, "role", "assign", role_scope(role.property_id)
            )
            if not allowed:
                raise PermissionDenied("User cannot remove roles")

            assignment = await deactivate_assignment(
                uow,
                user_id=data.user_id,
                role_id=role.id,
                actor_id=actor.id,
                now=now,
            )
            await record_entry(
                uow,
                action=action,
                role=role,
                admin=actor,
                user_id=data.user_id,
                user_role_id=assignment.id,
                reason=data.reason,
                context=history_context,
                changes={"is_active": {"from": True, "to": False}},
                audit_trail=data.audit_trail,
                timestamp=now,
            )

        logger.info(
            "role_removed",
            role_id=str(role.id),
            user_id=data.user_id,
            actor_id=actor.id,
        )
        await invalidate_subjects(self._decision_cache, [data.user_id])
        await emit_audit(
            self._audit_sink,
            AuditRecord(
                actor_id=actor.id,
                action="REMOVE_ROLE",
                entity="user_custom_role",
                entity_id=str(assignment.id),
                timestamp=now,
                old_data={"user_id": data.user_id, "role_id": str(role.id)},
            ),
        )
        return assignment
