"""Domain entities."""

from tenantguard.domain.entities.assignment import UserCustomRole
from tenantguard.domain.entities.audit import AuditRecord
from tenantguard.domain.entities.decision import CachedDecision, Decision
from tenantguard.domain.entities.history import (
    AuditTrail,
    HistoryContext,
    RoleHistoryEntry,
    RoleSnapshot,
    UserSnapshot,
)
from tenantguard.domain.entities.permission import Permission, PermissionCondition
from tenantguard.domain.entities.role import CustomRole, RolePermission
from tenantguard.domain.entities.subject import Subject
from tenantguard.domain.entities.user_permission import UserPermission

__all__ = [
    "AuditRecord",
    "AuditTrail",
    "CachedDecision",
    "CustomRole",
    "Decision",
    "HistoryContext",
    "Permission",
    "PermissionCondition",
    "RoleHistoryEntry",
    "RolePermission",
    "RoleSnapshot",
    "Subject",
    "UserCustomRole",
    "UserPermission",
    "UserSnapshot",
]
