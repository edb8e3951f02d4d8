"""Administrative audit records sent to the audit sink."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class AuditRecord:
    """Create/update/delete of roles, grants and revocations."""

    actor_id: str
    action: str
    entity: str
    entity_id: str
    timestamp: datetime
    old_data: dict[str, Any] | None = None
    new_data: dict[str, Any] | None = None
