"""Source tag of a permission decision."""

from enum import StrEnum


class DecisionSource(StrEnum):
    """Which evaluation step produced a decision."""

    ROLE = "role"
    USER = "user"
    CACHED = "cached"
    DEFAULT = "default"
    LEGACY = "legacy"
    VALIDATION = "validation"
