"""Role history analytics use case."""

from datetime import UTC, datetime, timedelta

from tenantguard.application.dto.history_dto import HistoryAnalytics, HistoryQuery
from tenantguard.application.use_cases.history.analysis import (
    analyze_patterns,
    calculate_trends,
    compliance_metrics,
    detect_suspicious_patterns,
)
from tenantguard.domain.entities import Subject
from tenantguard.domain.exceptions import PermissionDenied


class GetHistoryAnalyticsUseCase:
    """Trends, patterns and compliance metrics over a fixed lookback window."""

    def __init__(
        self,
        unit_of_work_factory: type,
        lookback_days: int = 90,
        retention_days: int = 2555,
        high_frequency_threshold: int = 50,
        high_frequency_window_minutes: int = 60,
        off_hours_ratio: float = 0.3,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self._lookback_days = lookback_days
        self._retention_days = retention_days
        self._threshold = high_frequency_threshold
        self._window_minutes = high_frequency_window_minutes
        self._off_hours_ratio = off_hours_ratio

    async def execute(
        self, actor: Subject, organization_id: str | None = None
    ) -> HistoryAnalytics:
        if not actor.is_superuser:
            if organization_id and organization_id != actor.organization_id:
                raise PermissionDenied("Cannot read analytics of another organization")
            organization_id = actor.organization_id
        now = datetime.now(UTC)
        query = HistoryQuery(
            date_from=now - timedelta(days=self._lookback_days),
            organization_id=organization_id,
            property_id=None if actor.is_superuser else actor.property_id,
        )
        async with self._uow_factory() as uow:
            entries = await uow.history.list_matching(query)

        suspicious = detect_suspicious_patterns(
            entries,
            threshold=self._threshold,
            window_minutes=self._window_minutes,
            off_hours_ratio=self._off_hours_ratio,
        )
        return HistoryAnalytics(
            trends=calculate_trends(entries),
            patterns=analyze_patterns(entries),
            compliance=compliance_metrics(entries, now, self._retention_days, suspicious),
        )
