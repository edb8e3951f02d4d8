"""Search role history use case."""

from datetime import UTC, datetime, timedelta

from tenantguard.application.dto.history_dto import HistoryFilter, HistoryPage, HistoryQuery
from tenantguard.application.use_cases.history.analysis import summarize
from tenantguard.domain.entities import Subject
from tenantguard.domain.exceptions import ValidationError

DEFAULT_LOOKBACK = timedelta(days=30)
MAX_PAGE_SIZE = 500


def resolve_query(actor: Subject, filters: HistoryFilter, now: datetime) -> HistoryQuery:
    """Turn caller filters into absolute bounds restricted to the actor's tenant.

    Explicit dates win over a named window; with neither, the last 30 days apply.
    """
    date_from, date_to = filters.date_from, filters.date_to
    if date_from is None and date_to is None:
        if filters.time_range:
            date_from = now - filters.time_range.to_timedelta()
        else:
            date_from = now - DEFAULT_LOOKBACK
    if date_from and date_to and date_from > date_to:
        raise ValidationError("date_from must not be after date_to")

    return HistoryQuery(
        date_from=date_from,
        date_to=date_to,
        organization_id=None if actor.is_superuser else actor.organization_id,
        property_id=None if actor.is_superuser else actor.property_id,
        user_ids=list(filters.user_ids),
        role_ids=list(filters.role_ids),
        admin_ids=list(filters.admin_ids),
        actions=list(filters.actions),
        sources=list(filters.sources),
        search_term=filters.search_term.strip() if filters.search_term else None,
        batch_id=filters.batch_id,
        sort_by=filters.sort_by,
        sort_direction=filters.sort_direction,
    )


class SearchHistoryUseCase:
    """Paginated, AND-combined history search with a summary over all matches."""

    def __init__(self, unit_of_work_factory: type) -> None:
        self._uow_factory = unit_of_work_factory

    async def execute(self, actor: Subject, filters: HistoryFilter) -> HistoryPage:
        if filters.page < 1 or not 1 <= filters.limit <= MAX_PAGE_SIZE:
            raise ValidationError(f"page must be >= 1 and limit within 1..{MAX_PAGE_SIZE}")
        now = datetime.now(UTC)
        query = resolve_query(actor, filters, now)
        async with self._uow_factory() as uow:
            entries, total = await uow.history.search(
                query,
                offset=(filters.page - 1) * filters.limit,
                limit=filters.limit,
            )
            matching = await uow.history.list_matching(query)
        return HistoryPage(
            entries=entries,
            total=total,
            page=filters.page,
            limit=filters.limit,
            summary=summarize(matching, now),
        )
