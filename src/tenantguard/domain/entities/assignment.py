"""User to custom role assignment."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from tenantguard.domain.entities.permission import PermissionCondition


@dataclass
class UserCustomRole:
    """Binds one user to one custom role. Unique per (user, role)."""

    id: UUID
    user_id: str
    role_id: UUID
    assigned_at: datetime
    assigned_by: str | None = None
    is_active: bool = True
    expires_at: datetime | None = None
    conditions: list[PermissionCondition] | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    removed_by: str | None = None
    removed_at: datetime | None = None

    def is_effective(self, now: datetime) -> bool:
        """Active and not expired at ``now``."""
        return self.is_active and (self.expires_at is None or self.expires_at > now)
