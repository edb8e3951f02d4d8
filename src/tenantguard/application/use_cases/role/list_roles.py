"""List custom roles use case."""

from dataclasses import replace

from tenantguard.application.dto.role_dto import RolePage, RoleQuery
from tenantguard.domain.entities import Subject
from tenantguard.domain.exceptions import ValidationError

MAX_PAGE_SIZE = 100


class ListRolesUseCase:
    """Search and paginate roles; tenant filters apply unless the actor is a superuser."""

    def __init__(self, unit_of_work_factory: type) -> None:
        self._uow_factory = unit_of_work_factory

    async def execute(self, actor: Subject, query: RoleQuery) -> RolePage:
        if query.page < 1 or not 1 <= query.limit <= MAX_PAGE_SIZE:
            raise ValidationError(f"page must be >= 1 and limit within 1..{MAX_PAGE_SIZE}")
        if not actor.is_superuser:
            query = replace(
                query,
                organization_id=actor.organization_id,
                property_id=actor.property_id or query.property_id,
                unscoped=False,
            )
        async with self._uow_factory() as uow:
            items, total = await uow.roles.list(query)
        return RolePage(items=items, total=total, page=query.page, limit=query.limit)
