"""Custom role entities."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from tenantguard.domain.entities.permission import PermissionCondition


@dataclass
class RolePermission:
    """Join record granting (or withholding) a permission to a role."""

    role_id: UUID
    permission_id: UUID
    granted: bool = True
    conditions: list[PermissionCondition] | None = None


@dataclass
class CustomRole:
    """Tenant-defined role owned by an organization and optionally a property."""

    id: UUID
    name: str
    organization_id: str | None
    created_at: datetime
    updated_at: datetime
    property_id: str | None = None
    description: str | None = None
    priority: int = 100
    is_system_role: bool = False
    is_active: bool = True
    metadata: dict[str, Any] = field(default_factory=dict)
    cloned_from_id: UUID | None = None
    deleted_at: datetime | None = None
    permissions: list[RolePermission] = field(default_factory=list)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def granted_permission_ids(self) -> set[UUID]:
        return {rp.permission_id for rp in self.permissions if rp.granted}
