"""Custom role repository port."""

from datetime import datetime
from typing import Protocol
from uuid import UUID

from tenantguard.application.dto.role_dto import RoleQuery
from tenantguard.domain.entities import CustomRole, RolePermission


class RoleRepository(Protocol):
    """Port for custom role persistence. Roles are returned with their permissions."""

    async def get_by_id(self, role_id: UUID, include_deleted: bool = False) -> CustomRole | None: ...

    async def get_by_name(
        self,
        name: str,
        organization_id: str | None,
        property_id: str | None,
    ) -> CustomRole | None: ...

    async def list_for_tenant(
        self, organization_id: str | None, property_id: str | None = None
    ) -> list[CustomRole]: ...

    async def list_clones(self, role_id: UUID) -> list[CustomRole]: ...

    async def create(self, role: CustomRole) -> CustomRole: ...

    async def update(self, role: CustomRole) -> None: ...

    async def soft_delete(self, role_id: UUID, deleted_at: datetime) -> None: ...

    async def replace_permissions(
        self, role_id: UUID, permissions: list[RolePermission]
    ) -> None: ...

    async def list(self, query: RoleQuery) -> tuple[list[CustomRole], int]: ...
