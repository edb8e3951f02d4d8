"""User, role and administrator history use cases."""

from dataclasses import replace
from datetime import UTC, datetime, timedelta
from uuid import UUID

from tenantguard.application.dto.history_dto import (
    AdminActivity,
    HistoryQuery,
    RoleHistory,
    UserHistory,
)
from tenantguard.application.use_cases.history.analysis import (
    detect_suspicious_patterns,
    impact_metrics,
)
from tenantguard.application.use_cases.history.rollback import can_rollback
from tenantguard.application.use_cases.role.tenant_scope import (
    ensure_role_access,
    ensure_same_tenant,
)
from tenantguard.domain.entities import RoleHistoryEntry, Subject, UserSnapshot
from tenantguard.domain.exceptions import NotFound
from tenantguard.domain.value_objects import HistoryTimeRange

MASK = "***"


def _tenant_query(actor: Subject, **filters) -> HistoryQuery:
    return HistoryQuery(
        organization_id=None if actor.is_superuser else actor.organization_id,
        property_id=None if actor.is_superuser else actor.property_id,
        **filters,
    )


def mask_user(entry: RoleHistoryEntry) -> RoleHistoryEntry:
    if entry.user is None:
        return entry
    masked = UserSnapshot(
        id=entry.user.id,
        first_name=MASK,
        last_name=MASK,
        email=MASK,
        legacy_role=entry.user.legacy_role,
        department_id=entry.user.department_id,
    )
    return replace(entry, user=masked)


class GetUserHistoryUseCase:
    """Every entry concerning one user."""

    def __init__(self, unit_of_work_factory: type) -> None:
        self._uow_factory = unit_of_work_factory

    async def execute(self, actor: Subject, user_id: str, limit: int = 100) -> UserHistory:
        async with self._uow_factory() as uow:
            if actor.id != user_id:
                target = await uow.users.get(user_id)
                if not target:
                    raise NotFound("User", user_id)
                ensure_same_tenant(actor, target)
            entries, _ = await uow.history.search(
                _tenant_query(actor, user_ids=[user_id]), limit=limit
            )
        return UserHistory(user_id=user_id, entries=entries, enable_rollback=can_rollback(actor))


class GetRoleHistoryUseCase:
    """Assignment history of one role, optionally with user details masked."""

    def __init__(self, unit_of_work_factory: type) -> None:
        self._uow_factory = unit_of_work_factory

    async def execute(
        self,
        actor: Subject,
        role_id: UUID,
        mask_user_details: bool = False,
        limit: int = 100,
    ) -> RoleHistory:
        async with self._uow_factory() as uow:
            role = await uow.roles.get_by_id(role_id, include_deleted=True)
            if not role:
                raise NotFound("Role", str(role_id))
            ensure_role_access(actor, role)
            entries, _ = await uow.history.search(
                _tenant_query(actor, role_ids=[role_id]), limit=limit
            )
        if mask_user_details:
            entries = [mask_user(e) for e in entries]
        return RoleHistory(role_id=role_id, entries=entries)


class GetAdminActivityUseCase:
    """Changes made by one administrator, with optional impact and pattern analysis."""

    def __init__(
        self,
        unit_of_work_factory: type,
        high_frequency_threshold: int = 50,
        high_frequency_window_minutes: int = 60,
        off_hours_ratio: float = 0.3,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self._threshold = high_frequency_threshold
        self._window_minutes = high_frequency_window_minutes
        self._off_hours_ratio = off_hours_ratio

    async def execute(
        self,
        actor: Subject,
        admin_id: str,
        time_range: HistoryTimeRange = HistoryTimeRange.THIRTY_DAYS,
        include_impact: bool = False,
        include_suspicious: bool = False,
    ) -> AdminActivity:
        window = time_range.to_timedelta()
        since = datetime.now(UTC) - window
        async with self._uow_factory() as uow:
            entries = await uow.history.list_matching(
                _tenant_query(actor, admin_ids=[admin_id], date_from=since)
            )
        activity = AdminActivity(admin_id=admin_id, entries=entries)
        if include_impact:
            days = max(window // timedelta(days=1), 1)
            activity.impact_metrics = impact_metrics(entries, days)
        if include_suspicious:
            activity.suspicious_patterns = detect_suspicious_patterns(
                entries,
                threshold=self._threshold,
                window_minutes=self._window_minutes,
                off_hours_ratio=self._off_hours_ratio,
            )
        return activity
