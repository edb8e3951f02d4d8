"""Expire assignments use case."""

from datetime import UTC, datetime

import structlog

from tenantguard.application.ports import DecisionCache
from tenantguard.application.use_cases.history.record_history import SYSTEM_ACTOR, record_entry
from tenantguard.application.use_cases.role.assignment_ops import deactivate_assignment
from tenantguard.application.use_cases.side_effects import invalidate_subjects
from tenantguard.domain.entities import HistoryContext, UserCustomRole
from tenantguard.domain.value_objects import RoleHistoryAction, RoleHistorySource

logger = structlog.get_logger(__name__)


class ExpireAssignmentsUseCase:
    """Deactivate assignments past their expiry and record EXPIRED entries."""

    def __init__(
        self,
        unit_of_work_factory: type,
        decision_cache: DecisionCache | None = None,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self._decision_cache = decision_cache

    async def execute(self, now: datetime | None = None) -> list[UserCustomRole]:
        now = now or datetime.now(UTC)
        expired: list[UserCustomRole] = []
        context = HistoryContext(
            source=RoleHistorySource.SYSTEM, operation_type="expiration_sweep"
        )
        async with self._uow_factory() as uow:
            for assignment in await uow.assignments.list_expired(now):
                role = await uow.roles.get_by_id(assignment.role_id, include_deleted=True)
                if not role:
                    continue
                removed = await deactivate_assignment(
                    uow,
                    user_id=assignment.user_id,
                    role_id=assignment.role_id,
                    actor_id=SYSTEM_ACTOR.id,
                    now=now,
                )
                await record_entry(
                    uow,
                    action=RoleHistoryAction.EXPIRED,
                    role=role,
                    admin=SYSTEM_ACTOR,
                    user_id=assignment.user_id,
                    user_role_id=assignment.id,
                    reason="Assignment expired",
                    context=context,
                    changes={
                        "is_active": {"from": True, "to": False},
                        "expires_at": assignment.expires_at.isoformat()
                        if assignment.expires_at
                        else None,
                    },
                    timestamp=now,
                )
                expired.append(removed)

        if expired:
            logger.info("assignments_expired", count=len(expired))
        await invalidate_subjects(self._decision_cache, [a.user_id for a in expired])
        return expired
