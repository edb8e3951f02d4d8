"""Legacy coarse role -> wildcard permission pattern table."""

from collections.abc import Mapping
from dataclasses import dataclass

from tenantguard.domain.value_objects import (
    LegacyRole,
    PermissionKey,
    PermissionPattern,
    UserType,
)

DEFAULT_LEGACY_PATTERNS: dict[LegacyRole, tuple[str, ...]] = {
    LegacyRole.PLATFORM_ADMIN: (
        "*.*.platform",
        "*.*.organization",
        "*.*.property",
        "*.*.department",
        "*.*.own",
        "role.*.platform",
        "system.*.platform",
    ),
    LegacyRole.ORGANIZATION_OWNER: (
        "*.*.organization",
        "*.*.property",
        "*.*.department",
        "*.*.own",
    ),
    LegacyRole.ORGANIZATION_ADMIN: (
        "*.read.organization",
        "*.update.organization",
        "role.read.organization",
        "*.*.property",
        "*.*.department",
        "*.*.own",
    ),
    LegacyRole.PROPERTY_MANAGER: (
        "*.*.property",
        "*.*.department",
        "*.*.own",
    ),
    LegacyRole.DEPARTMENT_ADMIN: (
        "*.read.property",
        "*.*.department",
        "*.*.own",
    ),
    LegacyRole.STAFF: (
        "profile.read.department",
        "documents.read.department",
        "training.read.department",
        "vacation.read.department",
        "benefits.read.property",
        "units.read.property",
        "guests.read.property",
        "reservations.read.property",
        "*.*.own",
    ),
    LegacyRole.CLIENT: (
        "profile.read.own",
        "profile.update.own",
        "reservations.read.own",
        "documents.read.own",
        "portal.access.client",
    ),
    LegacyRole.VENDOR: (
        "profile.read.own",
        "profile.update.own",
        "vendors.read.own",
        "vendors.update.own",
        "portal.access.vendor",
        "concierge.read.property",
        "concierge.update.property",
    ),
}


@dataclass(frozen=True)
class LegacyRoleInfo:
    """Display data and hierarchy level of a legacy role."""

    name: str
    description: str
    level: int
    user_type: UserType


ROLE_INFO: dict[LegacyRole, LegacyRoleInfo] = {
    LegacyRole.PLATFORM_ADMIN: LegacyRoleInfo(
        "Platform Admin",
        "Full system access across all organizations and properties",
        10,
        UserType.INTERNAL,
    ),
    LegacyRole.ORGANIZATION_OWNER: LegacyRoleInfo(
        "Organization Owner", "Owns and manages an organization", 9, UserType.INTERNAL
    ),
    LegacyRole.ORGANIZATION_ADMIN: LegacyRoleInfo(
        "Organization Admin",
        "Administers organization settings and properties",
        8,
        UserType.INTERNAL,
    ),
    LegacyRole.PROPERTY_MANAGER: LegacyRoleInfo(
        "Property Manager", "Manages individual properties", 7, UserType.INTERNAL
    ),
    LegacyRole.DEPARTMENT_ADMIN: LegacyRoleInfo(
        "Department Admin",
        "Manages specific departments within properties",
        6,
        UserType.INTERNAL,
    ),
    LegacyRole.STAFF: LegacyRoleInfo(
        "Staff", "Regular staff with operational access", 5, UserType.INTERNAL
    ),
    LegacyRole.VENDOR: LegacyRoleInfo(
        "Vendor", "External vendors with work-related access", 3, UserType.VENDOR
    ),
    LegacyRole.CLIENT: LegacyRoleInfo(
        "Client", "External clients with access to their own data", 2, UserType.CLIENT
    ),
}


class LegacyRoleMapper:
    """Resolves legacy roles to parsed wildcard patterns."""

    def __init__(
        self, table: Mapping[LegacyRole, tuple[str, ...] | list[str]] | None = None
    ) -> None:
        source = DEFAULT_LEGACY_PATTERNS if table is None else table
        self._patterns: dict[LegacyRole, tuple[PermissionPattern, ...]] = {
            role: tuple(PermissionPattern.parse(p) for p in patterns)
            for role, patterns in source.items()
        }

    def patterns_for(self, role: LegacyRole | None) -> tuple[PermissionPattern, ...]:
        if role is None:
            return ()
        return self._patterns.get(role, ())

    def matching_pattern(
        self, role: LegacyRole | None, key: PermissionKey
    ) -> PermissionPattern | None:
        """First pattern of ``role`` that matches ``key``."""
        for pattern in self.patterns_for(role):
            if pattern.matches(key):
                return pattern
        return None

    def grants(self, role: LegacyRole | None, key: PermissionKey) -> bool:
        return self.matching_pattern(role, key) is not None


def role_info(role: LegacyRole) -> LegacyRoleInfo:
    return ROLE_INFO[role]


def can_assign_role(actor_role: LegacyRole | None, target_role: LegacyRole) -> bool:
    """Actors assign legacy roles strictly below their own level; platform admins assign any."""
    if actor_role is None:
        return False
    if actor_role is LegacyRole.PLATFORM_ADMIN:
        return True
    return ROLE_INFO[actor_role].level > ROLE_INFO[target_role].level


def assignable_roles(actor_role: LegacyRole | None) -> list[LegacyRole]:
    return [r for r in LegacyRole if can_assign_role(actor_role, r)]
