"""Permission catalog repository port."""

from typing import Protocol
from uuid import UUID

from tenantguard.domain.entities import Permission


class PermissionRepository(Protocol):
    """Port for the shared permission catalog."""

    async def get_by_id(self, permission_id: UUID) -> Permission | None: ...

    async def get_by_key(self, resource: str, action: str, scope: str) -> Permission | None: ...

    async def list_by_ids(self, permission_ids: list[UUID]) -> list[Permission]: ...

    async def list_all(self) -> list[Permission]: ...

    async def count(self) -> int: ...

    async def upsert(self, permission: Permission) -> Permission: ...
