"""Summaries, metrics and heuristics computed over history entries."""

from collections import Counter, defaultdict
from datetime import datetime, timedelta

from tenantguard.application.dto.history_dto import (
    HistorySummary,
    ImpactMetrics,
    SuspiciousPattern,
)
from tenantguard.domain.entities import RoleHistoryEntry
from tenantguard.domain.value_objects import RoleHistoryAction, RoleHistorySource

OFF_HOURS_START = 22
OFF_HOURS_END = 6
TOP_N = 5


def is_off_hours(moment: datetime) -> bool:
    return moment.hour < OFF_HOURS_END or moment.hour > OFF_HOURS_START


def is_bulk(entry: RoleHistoryEntry) -> bool:
    return entry.action.is_bulk or entry.context.source is RoleHistorySource.BULK


def summarize(entries: list[RoleHistoryEntry], now: datetime) -> HistorySummary:
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    periods = {
        "this_hour": now - timedelta(hours=1),
        "today": today,
        "this_week": now - timedelta(days=7),
        "this_month": today.replace(day=1),
    }
    return HistorySummary(
        total_entries=len(entries),
        actions_count=dict(Counter(str(e.action) for e in entries)),
        period_stats={
            key: sum(1 for e in entries if e.timestamp >= start)
            for key, start in periods.items()
        },
        top_users=Counter(e.user_id for e in entries if e.user_id).most_common(TOP_N),
        top_roles=Counter(e.role_id for e in entries).most_common(TOP_N),
        top_admins=Counter(e.admin_id for e in entries).most_common(TOP_N),
    )


def impact_metrics(entries: list[RoleHistoryEntry], period_days: int) -> ImpactMetrics:
    return ImpactMetrics(
        total_actions=len(entries),
        unique_users=len({e.user_id for e in entries if e.user_id}),
        unique_roles=len({e.role_id for e in entries}),
        bulk_operations=sum(1 for e in entries if is_bulk(e)),
        average_actions_per_day=round(len(entries) / max(period_days, 1), 2),
    )


def _max_in_window(timestamps: list[datetime], window: timedelta) -> int:
    """Largest number of timestamps inside any rolling window."""
    ordered = sorted(timestamps)
    best = 0
    start = 0
    for end, moment in enumerate(ordered):
        while moment - ordered[start] > window:
            start += 1
        best = max(best, end - start + 1)
    return best


def detect_suspicious_patterns(
    entries: list[RoleHistoryEntry],
    *,
    threshold: int = 50,
    window_minutes: int = 60,
    off_hours_ratio: float = 0.3,
) -> list[SuspiciousPattern]:
    """Advisory signals per admin: bursts of changes and off-hours activity."""
    by_admin: dict[str, list[RoleHistoryEntry]] = defaultdict(list)
    for entry in entries:
        by_admin[entry.admin_id].append(entry)

    window = timedelta(minutes=window_minutes)
    patterns: list[SuspiciousPattern] = []
    for admin_id, admin_entries in sorted(by_admin.items()):
        burst = _max_in_window([e.timestamp for e in admin_entries], window)
        if burst > threshold:
            patterns.append(
                SuspiciousPattern(
                    type="high_frequency",
                    description=f"{burst} role changes within {window_minutes} minutes",
                    severity="high",
                    count=burst,
                    admin_id=admin_id,
                )
            )
        night = sum(1 for e in admin_entries if is_off_hours(e.timestamp))
        if night > len(admin_entries) * off_hours_ratio:
            patterns.append(
                SuspiciousPattern(
                    type="unusual_timing",
                    description=f"{night} role changes during off-hours",
                    severity="medium",
                    count=night,
                    admin_id=admin_id,
                )
            )
    return patterns


def calculate_trends(entries: list[RoleHistoryEntry]) -> dict:
    velocity: Counter[str] = Counter()
    for e in entries:
        if e.action in (RoleHistoryAction.ASSIGNED, RoleHistoryAction.BULK_ASSIGNED):
            velocity[e.timestamp.date().isoformat()] += 1
    role_names = {e.role_id: e.role.name for e in entries if e.role}
    return {
        "assignment_velocity": sorted(velocity.items()),
        "role_popularity": [
            {"role_id": str(role_id), "name": role_names.get(role_id), "count": count}
            for role_id, count in Counter(e.role_id for e in entries).most_common(10)
        ],
        "admin_activity": [
            {"admin_id": admin_id, "count": count}
            for admin_id, count in Counter(e.admin_id for e in entries).most_common(10)
        ],
    }


def average_assignment_duration_hours(entries: list[RoleHistoryEntry]) -> float:
    """Mean time between an assignment and its following removal or expiry."""
    opened: dict[tuple[str, object], datetime] = {}
    durations: list[float] = []
    for e in sorted(entries, key=lambda x: x.timestamp):
        if not e.user_id:
            continue
        key = (e.user_id, e.role_id)
        if e.action in (RoleHistoryAction.ASSIGNED, RoleHistoryAction.BULK_ASSIGNED):
            opened[key] = e.timestamp
        elif e.action in (
            RoleHistoryAction.REMOVED,
            RoleHistoryAction.BULK_REMOVED,
            RoleHistoryAction.EXPIRED,
        ):
            started = opened.pop(key, None)
            if started is not None:
                durations.append((e.timestamp - started).total_seconds() / 3600)
    if not durations:
        return 0.0
    return round(sum(durations) / len(durations), 2)


def analyze_patterns(entries: list[RoleHistoryEntry]) -> dict:
    total = len(entries)
    hours = Counter(e.timestamp.hour for e in entries)
    reasons = Counter(e.reason.strip() for e in entries if e.reason and e.reason.strip())
    return {
        "bulk_operation_frequency": (
            round(sum(1 for e in entries if e.action.is_bulk) / total, 4) if total else 0.0
        ),
        "average_assignment_duration_hours": average_assignment_duration_hours(entries),
        "peak_activity_hours": [hour for hour, _ in hours.most_common(4)],
        "most_common_reasons": reasons.most_common(TOP_N),
    }


def compliance_metrics(
    entries: list[RoleHistoryEntry],
    now: datetime,
    retention_days: int,
    suspicious: list[SuspiciousPattern],
) -> dict:
    total = len(entries)
    if not total:
        return {
            "audit_coverage": 100.0,
            "retention_compliance": 100.0,
            "suspicious_patterns": suspicious,
        }
    with_audit = sum(1 for e in entries if e.audit_trail.has_client_info)
    horizon = now - timedelta(days=retention_days)
    retained = sum(1 for e in entries if e.timestamp >= horizon)
    return {
        "audit_coverage": round(with_audit / total * 100, 2),
        "retention_compliance": round(retained / total * 100, 2),
        "suspicious_patterns": suspicious,
    }
