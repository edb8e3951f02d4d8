"""Role history search, analytics and rollback DTOs."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from tenantguard.domain.entities import AuditTrail, RoleHistoryEntry
from tenantguard.domain.value_objects import (
    HistoryTimeRange,
    RoleHistoryAction,
    RoleHistorySource,
)


@dataclass
class HistoryFilter:
    """Caller-facing search filters."""

    date_from: datetime | None = None
    date_to: datetime | None = None
    time_range: HistoryTimeRange | None = None
    user_ids: list[str] = field(default_factory=list)
    role_ids: list[UUID] = field(default_factory=list)
    admin_ids: list[str] = field(default_factory=list)
    actions: list[RoleHistoryAction] = field(default_factory=list)
    sources: list[RoleHistorySource] = field(default_factory=list)
    search_term: str | None = None
    batch_id: str | None = None
    sort_by: Literal["timestamp", "action"] = "timestamp"
    sort_direction: Literal["asc", "desc"] = "desc"
    page: int = 1
    limit: int = 50


@dataclass
class HistoryQuery:
    """Resolved repository query: absolute time bounds plus tenant scope."""

    date_from: datetime | None = None
    date_to: datetime | None = None
    organization_id: str | None = None
    property_id: str | None = None
    user_ids: list[str] = field(default_factory=list)
    role_ids: list[UUID] = field(default_factory=list)
    admin_ids: list[str] = field(default_factory=list)
    actions: list[RoleHistoryAction] = field(default_factory=list)
    sources: list[RoleHistorySource] = field(default_factory=list)
    search_term: str | None = None
    batch_id: str | None = None
    sort_by: Literal["timestamp", "action"] = "timestamp"
    sort_direction: Literal["asc", "desc"] = "desc"


@dataclass
class HistorySummary:
    """Counts over all entries matching a search."""

    total_entries: int
    actions_count: dict[str, int]
    period_stats: dict[str, int]
    top_users: list[tuple[str, int]]
    top_roles: list[tuple[UUID, int]]
    top_admins: list[tuple[str, int]]


@dataclass
class HistoryPage:
    """One page of search results."""

    entries: list[RoleHistoryEntry]
    total: int
    page: int
    limit: int
    summary: HistorySummary

    @property
    def total_pages(self) -> int:
        if self.limit <= 0:
            return 0
        return -(-self.total // self.limit)


@dataclass
class UserHistory:
    """History for one user."""

    user_id: str
    entries: list[RoleHistoryEntry]
    enable_rollback: bool

    @property
    def total(self) -> int:
        return len(self.entries)


@dataclass
class RoleHistory:
    """Assignment history for one role."""

    role_id: UUID
    entries: list[RoleHistoryEntry]

    @property
    def total(self) -> int:
        return len(self.entries)

    @property
    def user_count(self) -> int:
        return len({e.user_id for e in self.entries if e.user_id})


@dataclass(frozen=True)
class SuspiciousPattern:
    """Advisory signal, never enforcement."""

    type: str
    description: str
    severity: Literal["low", "medium", "high"]
    count: int
    admin_id: str | None = None


@dataclass
class ImpactMetrics:
    """Reach of an administrator's changes."""

    total_actions: int
    unique_users: int
    unique_roles: int
    bulk_operations: int
    average_actions_per_day: float


@dataclass
class AdminActivity:
    """History produced by one administrator."""

    admin_id: str
    entries: list[RoleHistoryEntry]
    impact_metrics: ImpactMetrics | None = None
    suspicious_patterns: list[SuspiciousPattern] | None = None

    @property
    def total(self) -> int:
        return len(self.entries)


@dataclass
class HistoryAnalytics:
    """Trends, patterns and compliance metrics over the lookback window."""

    trends: dict[str, Any]
    patterns: dict[str, Any]
    compliance: dict[str, Any]


@dataclass
class RollbackInput:
    """Compensate one reversible history entry."""

    entry_id: UUID
    reason: str
    audit_trail: AuditTrail = field(default_factory=AuditTrail)


@dataclass
class RollbackResult:
    """Outcome of a rollback."""

    original_entry_id: UUID
    rollback_action: RoleHistoryAction
    entry: RoleHistoryEntry
    message: str
