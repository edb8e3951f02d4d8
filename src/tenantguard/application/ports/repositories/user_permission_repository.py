"""Direct user permission repository port."""

from typing import Protocol
from uuid import UUID

from tenantguard.domain.entities import UserPermission


class UserPermissionRepository(Protocol):
    """Port for per-user grants and explicit denies."""

    async def get(self, user_id: str, permission_id: UUID) -> UserPermission | None: ...

    async def list_for_user(self, user_id: str) -> list[UserPermission]: ...

    async def create(self, user_permission: UserPermission) -> UserPermission: ...

    async def update(self, user_permission: UserPermission) -> None: ...

    async def delete(self, user_permission_id: UUID) -> None: ...
