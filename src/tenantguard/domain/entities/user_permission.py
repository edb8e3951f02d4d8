"""Direct per-user permission override."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from tenantguard.domain.entities.permission import PermissionCondition


@dataclass
class UserPermission:
    """Direct grant (granted=True) or explicit deny (granted=False)."""

    id: UUID
    user_id: str
    permission_id: UUID
    granted: bool
    created_at: datetime
    is_active: bool = True
    expires_at: datetime | None = None
    conditions: list[PermissionCondition] | None = None
    granted_by: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def is_effective(self, now: datetime) -> bool:
        return self.is_active and (self.expires_at is None or self.expires_at > now)
