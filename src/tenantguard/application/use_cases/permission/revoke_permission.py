"""Revoke a direct user permission override."""

from datetime import UTC, datetime
from uuid import UUID

import structlog

from tenantguard.application.ports import AuditSink, DecisionCache, PermissionChecker
from tenantguard.application.use_cases.role.tenant_scope import ensure_same_tenant
from tenantguard.application.use_cases.side_effects import emit_audit, invalidate_subjects
from tenantguard.domain.entities import AuditRecord, Subject
from tenantguard.domain.exceptions import NotFound, PermissionDenied
from tenantguard.domain.value_objects import PermissionScope

logger = structlog.get_logger(__name__)


class RevokePermissionUseCase:
    """Delete the grant or deny a user holds for one permission."""

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

    async def execute(self, actor: Subject, user_id: str, permission_id: UUID) -> None:
        has_admin = await self._permission_checker.check(
            actor, "permission", "revoke", PermissionScope.ORGANIZATION
        )
        if not has_admin:
            raise PermissionDenied("User cannot manage permissions")

        async with self._uow_factory() as uow:
            target = await uow.users.get(user_id)
            if target:
                ensure_same_tenant(actor, target)
            override = await uow.user_permissions.get(user_id, permission_id)
            if not override:
                raise NotFound("User permission", f"{user_id}/{permission_id}")
            await uow.user_permissions.delete(override.id)

        logger.info("user_permission_revoked", user_id=user_id, permission_id=str(permission_id))
        await invalidate_subjects(self._decision_cache, [user_id])
        await emit_audit(
            self._audit_sink,
            AuditRecord(
                actor_id=actor.id,
                action="REVOKE_PERMISSION",
                entity="user_permission",
                entity_id=str(override.id),
                timestamp=datetime.now(UTC),
                old_data={
                    "user_id": user_id,
                    "permission_id": str(permission_id),
                    "granted": override.granted,
                },
            ),
        )
