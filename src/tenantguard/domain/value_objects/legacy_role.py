"""Legacy coarse-grained roles and user types."""

from enum import StrEnum


class LegacyRole(StrEnum):
    """Fixed coarse roles kept for backward compatibility."""

    PLATFORM_ADMIN = "PLATFORM_ADMIN"
    ORGANIZATION_OWNER = "ORGANIZATION_OWNER"
    ORGANIZATION_ADMIN = "ORGANIZATION_ADMIN"
    PROPERTY_MANAGER = "PROPERTY_MANAGER"
    DEPARTMENT_ADMIN = "DEPARTMENT_ADMIN"
    STAFF = "STAFF"
    CLIENT = "CLIENT"
    VENDOR = "VENDOR"


class UserType(StrEnum):
    """Internal staff versus external users."""

    INTERNAL = "INTERNAL"
    CLIENT = "CLIENT"
    VENDOR = "VENDOR"

    @property
    def is_external(self) -> bool:
        return self is not UserType.INTERNAL
