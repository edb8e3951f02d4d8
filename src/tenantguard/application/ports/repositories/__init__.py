"""Repository ports."""

from tenantguard.application.ports.repositories.assignment_repository import (
    AssignmentRepository,
)
from tenantguard.application.ports.repositories.history_repository import (
    HistoryRepository,
)
from tenantguard.application.ports.repositories.permission_repository import (
    PermissionRepository,
)
from tenantguard.application.ports.repositories.role_repository import RoleRepository
from tenantguard.application.ports.repositories.user_directory import UserDirectory
from tenantguard.application.ports.repositories.user_permission_repository import (
    UserPermissionRepository,
)

__all__ = [
    "AssignmentRepository",
    "HistoryRepository",
    "PermissionRepository",
    "RoleRepository",
    "UserDirectory",
    "UserPermissionRepository",
]
