"""Permission keys and wildcard patterns.

A permission is identified by ``resource.action.scope``. Legacy roles grant
patterns in the same shape where any segment may be ``*``. Each segment is
parsed into an explicit tagged type so matching never relies on string tricks.
"""

from dataclasses import dataclass

WILDCARD = "*"


@dataclass(frozen=True)
class AnySegment:
    """Matches any value."""

    def matches(self, value: str) -> bool:
        return True

    def __str__(self) -> str:
        return WILDCARD


@dataclass(frozen=True)
class LiteralSegment:
    """Matches exactly one value."""

    value: str

    def matches(self, value: str) -> bool:
        return self.value == value

    def __str__(self) -> str:
        return self.value


Segment = AnySegment | LiteralSegment


def parse_segment(raw: str) -> Segment:
    """Parse one pattern segment."""
    raw = raw.strip()
    if not raw:
        raise ValueError("Empty permission pattern segment")
    if raw == WILDCARD:
        return AnySegment()
    return LiteralSegment(raw)


@dataclass(frozen=True)
class PermissionKey:
    """Identity key of a catalog permission."""

    resource: str
    action: str
    scope: str

    @classmethod
    def parse(cls, value: str) -> "PermissionKey":
        parts = value.split(".")
        if len(parts) != 3 or not all(parts):
            raise ValueError(f"Invalid permission key: {value!r}")
        return cls(parts[0], parts[1], parts[2])

    def __str__(self) -> str:
        return f"{self.resource}.{self.action}.{self.scope}"


@dataclass(frozen=True)
class PermissionPattern:
    """Three-segment wildcard pattern, e.g. ``*.read.property``."""

    resource: Segment
    action: Segment
    scope: Segment

    @classmethod
    def parse(cls, value: str) -> "PermissionPattern":
        parts = value.split(".")
        if len(parts) != 3:
            raise ValueError(f"Invalid permission pattern: {value!r}")
        return cls(
            resource=parse_segment(parts[0]),
            action=parse_segment(parts[1]),
            scope=parse_segment(parts[2]),
        )

    def matches(self, key: PermissionKey) -> bool:
        return (
            self.resource.matches(key.resource)
            and self.action.matches(key.action)
            and self.scope.matches(key.scope)
        )

    @property
    def is_universal(self) -> bool:
        return all(
            isinstance(s, AnySegment) for s in (self.resource, self.action, self.scope)
        )

    def __str__(self) -> str:
        return f"{self.resource}.{self.action}.{self.scope}"
