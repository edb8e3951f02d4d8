"""Permission catalog entities."""

from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from tenantguard.domain.value_objects import PermissionKey


@dataclass
class PermissionCondition:
    """Context-dependent predicate attached to a permission or a grant."""

    id: UUID
    condition_type: str
    operator: str = "in"
    value: dict[str, Any] = field(default_factory=dict)
    permission_id: UUID | None = None
    description: str | None = None


@dataclass
class Permission:
    """Catalog permission identified by (resource, action, scope)."""

    id: UUID
    resource: str
    action: str
    scope: str
    name: str | None = None
    description: str | None = None
    category: str | None = None
    is_system: bool = False
    conditions: list[PermissionCondition] = field(default_factory=list)

    @property
    def key(self) -> PermissionKey:
        return PermissionKey(self.resource, self.action, self.scope)
