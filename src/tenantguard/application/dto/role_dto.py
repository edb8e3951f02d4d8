"""Role and assignment DTOs."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from tenantguard.domain.entities import AuditTrail, CustomRole, PermissionCondition


@dataclass
class RoleCreateInput:
    """Input for creating a custom role."""

    name: str
    description: str | None = None
    priority: int = 100
    permission_ids: list[UUID] = field(default_factory=list)
    organization_id: str | None = None
    property_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    is_active: bool = True


@dataclass
class RoleUpdateInput:
    """Partial update; ``permission_ids=None`` leaves the permission set untouched."""

    name: str | None = None
    description: str | None = None
    priority: int | None = None
    is_active: bool | None = None
    metadata: dict[str, Any] | None = None
    permission_ids: list[UUID] | None = None


@dataclass
class RoleQuery:
    """Role listing filters. ``organization_id=None`` with ``unscoped`` lists every tenant."""

    organization_id: str | None = None
    property_id: str | None = None
    unscoped: bool = False
    search: str | None = None
    is_active: bool | None = None
    include_system_roles: bool = False
    sort_by: Literal["name", "priority", "created_at"] = "name"
    sort_direction: Literal["asc", "desc"] = "asc"
    page: int = 1
    limit: int = 10


@dataclass
class RolePage:
    """One page of roles."""

    items: list[CustomRole]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        if self.limit <= 0:
            return 0
        return -(-self.total // self.limit)


@dataclass
class RoleStats:
    """Role and assignment counts for a tenant."""

    total_roles: int
    total_assignments: int
    assignments_by_role: dict[UUID, int]
    assignments_by_level: dict[str, int]


@dataclass
class AssignmentInput:
    """Assign one role to one user."""

    user_id: str
    role_id: UUID
    expires_at: datetime | None = None
    conditions: list[PermissionCondition] | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    reason: str | None = None
    audit_trail: AuditTrail = field(default_factory=AuditTrail)


@dataclass
class RemovalInput:
    """Remove one role from one user."""

    user_id: str
    role_id: UUID
    reason: str | None = None
    audit_trail: AuditTrail = field(default_factory=AuditTrail)


@dataclass
class BulkFailure:
    """One failed item of a bulk operation."""

    item: Any
    error: str


@dataclass
class BulkOperationResult:
    """Per-item outcome of a bulk assign/remove."""

    batch_id: str
    successful: list[Any] = field(default_factory=list)
    failed: list[BulkFailure] = field(default_factory=list)

    @property
    def summary(self) -> dict[str, int]:
        return {
            "total": len(self.successful) + len(self.failed),
            "successful": len(self.successful),
            "failed": len(self.failed),
        }
