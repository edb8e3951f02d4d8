"""Append-only role history entries."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from tenantguard.domain.value_objects import RoleHistoryAction, RoleHistorySource


@dataclass(frozen=True)
class UserSnapshot:
    """Denormalized user details captured at write time."""

    id: str
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    legacy_role: str | None = None
    department_id: str | None = None


@dataclass(frozen=True)
class RoleSnapshot:
    """Denormalized role details captured at write time."""

    id: UUID
    name: str
    description: str | None = None
    priority: int = 0
    is_system_role: bool = False
    permission_count: int = 0


@dataclass(frozen=True)
class HistoryContext:
    """Where the operation came from."""

    source: RoleHistorySource = RoleHistorySource.MANUAL
    batch_id: str | None = None
    parent_entry_id: UUID | None = None
    operation_type: str | None = None


@dataclass(frozen=True)
class AuditTrail:
    """Request provenance of the operation."""

    ip_address: str | None = None
    user_agent: str | None = None
    session_id: str | None = None
    request_id: str | None = None

    @property
    def has_client_info(self) -> bool:
        return bool(self.ip_address or self.user_agent)


@dataclass(frozen=True)
class RoleHistoryEntry:
    """One immutable role state transition."""

    id: UUID
    timestamp: datetime
    action: RoleHistoryAction
    role_id: UUID
    admin_id: str
    user_id: str | None = None
    user_role_id: UUID | None = None
    reason: str | None = None
    context: HistoryContext = field(default_factory=HistoryContext)
    user: UserSnapshot | None = None
    role: RoleSnapshot | None = None
    admin: UserSnapshot | None = None
    changes: dict[str, Any] | None = None
    audit_trail: AuditTrail = field(default_factory=AuditTrail)
    organization_id: str | None = None
    property_id: str | None = None
    department_id: str | None = None
