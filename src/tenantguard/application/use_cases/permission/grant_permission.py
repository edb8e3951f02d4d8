"""Grant (or explicitly deny) a permission directly to a user."""

from dataclasses import replace
from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

import structlog

from tenantguard.application.ports import AuditSink, DecisionCache, PermissionChecker
from tenantguard.application.use_cases.role.tenant_scope import ensure_same_tenant
from tenantguard.application.use_cases.side_effects import emit_audit, invalidate_subjects
from tenantguard.domain.entities import AuditRecord, PermissionCondition, Subject, UserPermission
from tenantguard.domain.exceptions import NotFound, PermissionDenied, ValidationError
from tenantguard.domain.value_objects import PermissionScope

logger = structlog.get_logger(__name__)


class GrantPermissionUseCase:
    """Upsert the per-user override for one permission."""

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
        user_id: str,
        permission_id: UUID,
        granted: bool = True,
        expires_at: datetime | None = None,
        conditions: list[PermissionCondition] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> UserPermission:
        """Grant when ``granted`` is true, otherwise record an explicit deny."""
        has_admin = await self._permission_checker.check(
            actor, "permission", "grant", PermissionScope.ORGANIZATION
        )
        if not has_admin:
            raise PermissionDenied("User cannot manage permissions")

        now = datetime.now(UTC)
        if expires_at is not None and expires_at <= now:
            raise ValidationError("Expiration must be in the future")

        async with self._uow_factory() as uow:
            permission = await uow.permissions.get_by_id(permission_id)
            if not permission:
                raise NotFound("Permission", str(permission_id))
            target = await uow.users.get(user_id)
            if not target:
                raise NotFound("User", user_id)
            ensure_same_tenant(actor, target)

            existing = await uow.user_permissions.get(user_id, permission_id)
            old_data = (
                {"granted": existing.granted, "is_active": existing.is_active}
                if existing
                else None
            )
            if existing:
                override = replace(
                    existing,
                    granted=granted,
                    is_active=True,
                    expires_at=expires_at,
                    conditions=conditions,
                    granted_by=actor.id,
                    metadata=metadata or existing.metadata,
                )
                await uow.user_permissions.update(override)
            else:
                override = UserPermission(
                    id=uuid4(),
                    user_id=user_id,
                    permission_id=permission_id,
                    granted=granted,
                    created_at=now,
                    expires_at=expires_at,
                    conditions=conditions,
                    granted_by=actor.id,
                    metadata=metadata or {},
                )
                await uow.user_permissions.create(override)

        logger.info(
            "user_permission_granted" if granted else "user_permission_denied",
            user_id=user_id,
            permission=str(permission.key),
            actor_id=actor.id,
        )
        await invalidate_subjects(self._decision_cache, [user_id])
        await emit_audit(
            self._audit_sink,
            AuditRecord(
                actor_id=actor.id,
                action="GRANT_PERMISSION" if granted else "DENY_PERMISSION",
                entity="user_permission",
                entity_id=str(override.id),
                timestamp=now,
                old_data=old_data,
                new_data={
                    "user_id": user_id,
                    "permission": str(permission.key),
                    "granted": granted,
                },
            ),
        )
        return override
