"""Get custom role use case."""

from uuid import UUID

from tenantguard.application.use_cases.role.tenant_scope import ensure_role_access
from tenantguard.domain.entities import CustomRole, Subject
from tenantguard.domain.exceptions import NotFound


class GetRoleUseCase:
    """Get role by id within the actor's tenant."""

    def __init__(self, unit_of_work_factory: type) -> None:
        self._uow_factory = unit_of_work_factory

    async def execute(self, actor: Subject, role_id: UUID) -> CustomRole:
        async with self._uow_factory() as uow:
            role = await uow.roles.get_by_id(role_id)
            if not role or role.is_deleted:
                raise NotFound("Role", str(role_id))
        ensure_role_access(actor, role)
        return role
