"""Domain value objects."""

from tenantguard.domain.value_objects.decision_source import DecisionSource
from tenantguard.domain.value_objects.history import (
    HistoryTimeRange,
    RoleHistoryAction,
    RoleHistorySource,
)
from tenantguard.domain.value_objects.legacy_role import LegacyRole, UserType
from tenantguard.domain.value_objects.permission_pattern import (
    AnySegment,
    LiteralSegment,
    PermissionKey,
    PermissionPattern,
    Segment,
)
from tenantguard.domain.value_objects.permission_scope import PermissionScope

__all__ = [
    "AnySegment",
    "DecisionSource",
    "HistoryTimeRange",
    "LegacyRole",
    "LiteralSegment",
    "PermissionKey",
    "PermissionPattern",
    "PermissionScope",
    "RoleHistoryAction",
    "RoleHistorySource",
    "Segment",
    "UserType",
]
