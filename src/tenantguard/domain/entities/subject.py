"""Authenticated subject supplied by the identity layer."""

from dataclasses import dataclass

from tenantguard.domain.value_objects import LegacyRole, UserType


@dataclass(frozen=True)
class Subject:
    """User identity and tenant context attached to every call."""

    id: str
    organization_id: str | None = None
    property_id: str | None = None
    department_id: str | None = None
    legacy_role: LegacyRole | None = None
    user_type: UserType = UserType.INTERNAL
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None

    @property
    def is_superuser(self) -> bool:
        return self.legacy_role is LegacyRole.PLATFORM_ADMIN

    @property
    def display_name(self) -> str:
        name = " ".join(p for p in (self.first_name, self.last_name) if p)
        return name or self.email or self.id
