"""Permission scopes."""

from enum import StrEnum


class PermissionScope(StrEnum):
    """Granularity at which a permission applies.

    Scopes are flat: no scope implies another.
    """

    OWN = "own"
    DEPARTMENT = "department"
    PROPERTY = "property"
    ORGANIZATION = "organization"
    PLATFORM = "platform"
    EXTERNAL = "external"
