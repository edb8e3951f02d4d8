"""Role statistics use case."""

from collections import Counter
from datetime import UTC, datetime

from tenantguard.application.dto.role_dto import RoleStats
from tenantguard.domain.entities import Subject

# (minimum priority, level name), highest first
PRIORITY_LEVELS: tuple[tuple[int, str], ...] = (
    (900, "Executive"),
    (700, "Management"),
    (500, "Supervisor"),
    (300, "Senior Staff"),
    (0, "Staff"),
)


def priority_level(priority: int) -> str:
    for minimum, name in PRIORITY_LEVELS:
        if priority >= minimum:
            return name
    return PRIORITY_LEVELS[-1][1]


class GetRoleStatsUseCase:
    """Count roles and active assignments for a tenant."""

    def __init__(self, unit_of_work_factory: type) -> None:
        self._uow_factory = unit_of_work_factory

    async def execute(
        self,
        actor: Subject,
        organization_id: str | None = None,
        property_id: str | None = None,
    ) -> RoleStats:
        if not actor.is_superuser:
            organization_id = actor.organization_id
            property_id = actor.property_id or property_id
        now = datetime.now(UTC)
        by_role: dict = {}
        by_level: Counter[str] = Counter()
        async with self._uow_factory() as uow:
            roles = await uow.roles.list_for_tenant(organization_id, property_id)
            for role in roles:
                active = [
                    a for a in await uow.assignments.list_for_role(role.id) if a.is_effective(now)
                ]
                by_role[role.id] = len(active)
                by_level[priority_level(role.priority)] += len(active)
        return RoleStats(
            total_roles=len(roles),
            total_assignments=sum(by_role.values()),
            assignments_by_role=by_role,
            assignments_by_level=dict(by_level),
        )
