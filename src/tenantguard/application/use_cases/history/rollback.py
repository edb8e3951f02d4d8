"""Rollback a reversible role history entry with a compensating operation."""

from datetime import UTC, datetime

import structlog

from tenantguard.application.dto.history_dto import RollbackInput, RollbackResult
from tenantguard.application.ports import AuditSink, DecisionCache
from tenantguard.application.use_cases.history.record_history import record_entry
from tenantguard.application.use_cases.role.assignment_ops import (
    activate_assignment,
    deactivate_assignment,
)
from tenantguard.application.use_cases.side_effects import emit_audit, invalidate_subjects
from tenantguard.domain.entities import AuditRecord, HistoryContext, Subject
from tenantguard.domain.exceptions import NotFound, PermissionDenied, ValidationError
from tenantguard.domain.value_objects import LegacyRole, RoleHistoryAction, RoleHistorySource

logger = structlog.get_logger(__name__)

ROLLBACK_ROLES = frozenset(
    {
        LegacyRole.PLATFORM_ADMIN,
        LegacyRole.ORGANIZATION_OWNER,
        LegacyRole.ORGANIZATION_ADMIN,
    }
)

# original action -> compensating action
COMPENSATIONS = {
    RoleHistoryAction.ASSIGNED: RoleHistoryAction.REMOVED,
    RoleHistoryAction.BULK_ASSIGNED: RoleHistoryAction.REMOVED,
    RoleHistoryAction.REMOVED: RoleHistoryAction.ASSIGNED,
    RoleHistoryAction.BULK_REMOVED: RoleHistoryAction.ASSIGNED,
}


def can_rollback(actor: Subject) -> bool:
    return actor.legacy_role in ROLLBACK_ROLES


class RollbackUseCase:
    """Compensate one entry; the original entry is never modified."""

    def __init__(
        self,
        unit_of_work_factory: type,
        decision_cache: DecisionCache | None = None,
        audit_sink: AuditSink | None = None,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self._decision_cache = decision_cache
        self._audit_sink = audit_sink

    async def execute(self, actor: Subject, data: RollbackInput) -> RollbackResult:
        if not can_rollback(actor):
            raise PermissionDenied("Insufficient role to roll back role changes")
        if not data.reason or not data.reason.strip():
            raise ValidationError("A rollback reason is required")

        now = datetime.now(UTC)
        async with self._uow_factory() as uow:
            original = await uow.history.get_by_id(data.entry_id)
            if not original:
                raise NotFound("History entry", str(data.entry_id))
            if not actor.is_superuser and original.organization_id != actor.organization_id:
                raise PermissionDenied("History entry belongs to another organization")

            compensation = COMPENSATIONS.get(original.action)
            if compensation is None or not original.user_id:
                raise ValidationError(f"Entries of type {original.action} cannot be rolled back")

            role = await uow.roles.get_by_id(original.role_id, include_deleted=True)
            if not role:
                raise NotFound("Role", str(original.role_id))

            if compensation is RoleHistoryAction.REMOVED:
                assignment = await deactivate_assignment(
                    uow,
                    user_id=original.user_id,
                    role_id=role.id,
                    actor_id=actor.id,
                    now=now,
                )
            else:
                if role.is_deleted:
                    raise ValidationError(f"Role {role.name} has been deleted")
                assignment = await activate_assignment(
                    uow,
                    user_id=original.user_id,
                    role=role,
                    actor_id=actor.id,
                    now=now,
                )

            entry = await record_entry(
                uow,
                action=compensation,
                role=role,
                admin=actor,
                user_id=original.user_id,
                user_role_id=assignment.id,
                reason=f"Rollback: {data.reason.strip()}",
                context=HistoryContext(
                    source=RoleHistorySource.MANUAL,
                    parent_entry_id=original.id,
                    operation_type="rollback",
                ),
                changes={
                    "is_active": {
                        "from": compensation is RoleHistoryAction.REMOVED,
                        "to": compensation is RoleHistoryAction.ASSIGNED,
                    },
                    "rolled_back_action": str(original.action),
                },
                audit_trail=data.audit_trail,
                timestamp=now,
            )

        logger.info(
            "role_history_rolled_back",
            original_entry_id=str(original.id),
            rollback_entry_id=str(entry.id),
            action=str(compensation),
            actor_id=actor.id,
        )
        await invalidate_subjects(self._decision_cache, [original.user_id])
        await emit_audit(
            self._audit_sink,
            AuditRecord(
                actor_id=actor.id,
                action="ROLLBACK",
                entity="role_history",
                entity_id=str(original.id),
                timestamp=now,
                new_data={"rollback_entry_id": str(entry.id), "action": str(compensation)},
            ),
        )
        return RollbackResult(
            original_entry_id=original.id,
            rollback_action=compensation,
            entry=entry,
            message=f"Rolled back {original.action} for user {original.user_id}",
        )
