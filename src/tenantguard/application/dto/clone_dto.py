"""Role cloning DTOs."""

from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from tenantguard.domain.entities import CustomRole, Permission


@dataclass
class PermissionFilters:
    """Which source permissions a clone keeps.

    Include lists restrict, exclude lists remove; ``custom_selections`` are
    permission ids that are always kept.
    """

    include_categories: list[str] = field(default_factory=list)
    exclude_categories: list[str] = field(default_factory=list)
    include_scopes: list[str] = field(default_factory=list)
    exclude_scopes: list[str] = field(default_factory=list)
    custom_selections: list[UUID] = field(default_factory=list)

    def keeps(self, permission: Permission) -> bool:
        if permission.id in self.custom_selections:
            return True
        category = permission.category or ""
        if self.include_categories and category not in self.include_categories:
            return False
        if category and category in self.exclude_categories:
            return False
        if self.include_scopes and permission.scope not in self.include_scopes:
            return False
        if permission.scope in self.exclude_scopes:
            return False
        return True


@dataclass
class CloneRoleInput:
    """Clone a role into a new one."""

    source_role_id: UUID
    name: str
    description: str | None = None
    priority: int | None = None
    organization_id: str | None = None
    property_id: str | None = None
    filters: PermissionFilters = field(default_factory=PermissionFilters)
    preserve_lineage: bool = True
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class ClonePreview:
    """Dry-run result of a clone."""

    source_role: CustomRole
    resulting_permissions: list[Permission]
    removed_permissions: list[Permission]
    validation_errors: list[str] = field(default_factory=list)
    validation_warnings: list[str] = field(default_factory=list)
    naming_conflicts: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.validation_errors


@dataclass
class RoleLineage:
    """Ancestors and direct clones of a role."""

    role: CustomRole
    ancestors: list[CustomRole]
    clones: list[CustomRole]

    @property
    def generation_level(self) -> int:
        return len(self.ancestors)

    @property
    def lineage_path(self) -> list[UUID]:
        return [r.id for r in reversed(self.ancestors)] + [self.role.id]
