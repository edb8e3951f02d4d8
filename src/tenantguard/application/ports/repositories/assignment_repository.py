"""User to custom role assignment repository port."""

from datetime import datetime
from typing import Protocol
from uuid import UUID

from tenantguard.domain.entities import RolePermission, UserCustomRole


class AssignmentRepository(Protocol):
    """Port for user role assignments."""

    async def get(self, user_id: str, role_id: UUID) -> UserCustomRole | None: ...

    async def list_for_user(self, user_id: str) -> list[UserCustomRole]: ...

    async def list_for_role(self, role_id: UUID, active_only: bool = True) -> list[UserCustomRole]: ...

    async def list_role_grants(
        self, user_id: str, permission_id: UUID
    ) -> list[tuple[UserCustomRole, RolePermission]]:
        """Assignments of ``user_id`` to active roles granting ``permission_id``."""
        ...

    async def list_expired(self, now: datetime) -> list[UserCustomRole]: ...

    async def create(self, assignment: UserCustomRole) -> UserCustomRole: ...

    async def update(self, assignment: UserCustomRole) -> None: ...
