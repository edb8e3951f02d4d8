"""Unit tests for the legacy role mapper and hierarchy helpers."""

import pytest

from tenantguard.domain.value_objects import LegacyRole, PermissionKey
from tenantguard.infrastructure.permission.legacy_roles import (
    LegacyRoleMapper,
    assignable_roles,
    can_assign_role,
    role_info,
)


@pytest.fixture
def mapper() -> LegacyRoleMapper:
    return LegacyRoleMapper()


@pytest.mark.parametrize(
    "role,key,expected",
    [
        (LegacyRole.PLATFORM_ADMIN, "system.configure.platform", True),
        (LegacyRole.ORGANIZATION_OWNER, "role.delete.organization", True),
        (LegacyRole.ORGANIZATION_OWNER, "system.configure.platform", False),
        (LegacyRole.ORGANIZATION_ADMIN, "role.read.organization", True),
        (LegacyRole.ORGANIZATION_ADMIN, "role.delete.organization", False),
        (LegacyRole.DEPARTMENT_ADMIN, "guests.read.property", True),
        (LegacyRole.DEPARTMENT_ADMIN, "guests.update.property", False),
        (LegacyRole.STAFF, "reservations.read.property", True),
        (LegacyRole.STAFF, "reservations.update.property", False),
        (LegacyRole.CLIENT, "portal.access.client", True),
        (LegacyRole.CLIENT, "portal.access.vendor", False),
        (LegacyRole.VENDOR, "concierge.update.property", True),
    ],
)
def test_default_table(mapper, role, key, expected) -> None:
    assert mapper.grants(role, PermissionKey.parse(key)) is expected


def test_no_legacy_role_grants_nothing(mapper) -> None:
    assert mapper.patterns_for(None) == ()
    assert mapper.grants(None, PermissionKey.parse("profile.read.own")) is False


def test_matching_pattern_returns_first_match(mapper) -> None:
    pattern = mapper.matching_pattern(
        LegacyRole.PROPERTY_MANAGER, PermissionKey.parse("units.update.property")
    )

    assert str(pattern) == "*.*.property"


def test_custom_table_replaces_default() -> None:
    mapper = LegacyRoleMapper({LegacyRole.STAFF: ["*.read.*"]})

    assert mapper.grants(LegacyRole.STAFF, PermissionKey.parse("units.read.organization")) is True
    assert mapper.grants(LegacyRole.PLATFORM_ADMIN, PermissionKey.parse("a.b.platform")) is False


def test_invalid_custom_pattern_rejected() -> None:
    with pytest.raises(ValueError):
        LegacyRoleMapper({LegacyRole.STAFF: ["units.read"]})


def test_role_info_levels() -> None:
    assert role_info(LegacyRole.PLATFORM_ADMIN).level == 10
    assert role_info(LegacyRole.CLIENT).user_type.is_external is True
    assert role_info(LegacyRole.STAFF).user_type.is_external is False


def test_can_assign_role_strictly_below() -> None:
    assert can_assign_role(LegacyRole.ORGANIZATION_ADMIN, LegacyRole.STAFF) is True
    assert can_assign_role(LegacyRole.ORGANIZATION_ADMIN, LegacyRole.ORGANIZATION_ADMIN) is False
    assert can_assign_role(LegacyRole.STAFF, LegacyRole.PROPERTY_MANAGER) is False
    assert can_assign_role(LegacyRole.PLATFORM_ADMIN, LegacyRole.PLATFORM_ADMIN) is True
    assert can_assign_role(None, LegacyRole.CLIENT) is False


def test_assignable_roles() -> None:
    assert assignable_roles(LegacyRole.STAFF) == [LegacyRole.CLIENT, LegacyRole.VENDOR]
    assert assignable_roles(None) == []
    assert len(assignable_roles(LegacyRole.PLATFORM_ADMIN)) == len(LegacyRole)
