"""Assign custom role to user use case."""

from datetime import UTC, datetime

import structlog

from tenantguard.application.dto.role_dto import AssignmentInput
from tenantguard.application.ports import AuditSink, DecisionCache, PermissionChecker
from tenantguard.application.use_cases.history.record_history import record_entry
from tenantguard.application.use_cases.role.assignment_ops import activate_assignment, load_role
from tenantguard.application.use_cases.role.tenant_scope import (
    ensure_role_access,
    ensure_same_tenant,
    role_scope,
)
from tenantguard.application.use_cases.side_effects import emit_audit, invalidate_subjects
from tenantguard.domain.entities import AuditRecord, HistoryContext, Subject, UserCustomRole
from tenantguard.domain.exceptions import NotFound, PermissionDenied
from tenantguard.domain.value_objects import RoleHistoryAction

logger = structlog.get_logger(__name__)


class AssignRoleUseCase:
    """Assign a role to a user, reactivating a previous inactive assignment."""

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
        data: AssignmentInput,
        *,
        action: RoleHistoryAction = RoleHistoryAction.ASSIGNED,
        history_context: HistoryContext | None = None,
    ) -> UserCustomRole:
        now = datetime.now(UTC)
        async with self._uow_factory() as uow:
            role = await load_role(uow, data.role_id)
            ensure_role_access(actor, role)
            allowed = await self._permission_checker.check(
                actor, "role", "assign", role_scope(role.property_id)
            )
            if not allowed:
                raise PermissionDenied("User cannot assign roles")

            target = await uow.users.get(data.user_id)
            if not target:
                raise NotFound("User", data.user_id)
            ensure_same_tenant(actor, target)

            assignment = await activate_assignment(
                uow,
                user_id=data.user_id,
                role=role,
                actor_id=actor.id,
                now=now,
                expires_at=data.expires_at,
                conditions=data.conditions,
                metadata=data.metadata,
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
                changes={
                    "is_active": {"from": False, "to": True},
                    "expires_at": {
                        "to": data.expires_at.isoformat() if data.expires_at else None
                    },
                },
                audit_trail=data.audit_trail,
                timestamp=now,
            )

        logger.info(
            "role_assigned",
            role_id=str(role.id),
            user_id=data.user_id,
            actor_id=actor.id,
        )
        await invalidate_subjects(self._decision_cache, [data.user_id])
        await emit_audit(
            self._audit_sink,
            AuditRecord(
                actor_id=actor.id,
                action="ASSIGN_ROLE",
                entity="user_custom_role",
                entity_id=str(assignment.id),
                timestamp=now,
                new_data={"user_id": data.user_id, "role_id": str(role.id)},
            ),
        )
        return assignment
