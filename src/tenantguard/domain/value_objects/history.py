"""Role history actions, sources and time windows."""

from datetime import timedelta
from enum import StrEnum


class RoleHistoryAction(StrEnum):
    """State transition recorded by a history entry."""

    ASSIGNED = "ASSIGNED"
    REMOVED = "REMOVED"
    MODIFIED = "MODIFIED"
    EXPIRED = "EXPIRED"
    BULK_ASSIGNED = "BULK_ASSIGNED"
    BULK_REMOVED = "BULK_REMOVED"

    @property
    def is_bulk(self) -> bool:
        return self in (RoleHistoryAction.BULK_ASSIGNED, RoleHistoryAction.BULK_REMOVED)


class RoleHistorySource(StrEnum):
    """Origin of the operation that produced a history entry."""

    MANUAL = "manual"
    BULK = "bulk"
    TEMPLATE = "template"
    MIGRATION = "migration"
    AUTOMATED = "automated"
    SYSTEM = "system"


class HistoryTimeRange(StrEnum):
    """Named lookback windows for history search."""

    ONE_HOUR = "1h"
    TWENTY_FOUR_HOURS = "24h"
    SEVEN_DAYS = "7d"
    THIRTY_DAYS = "30d"
    NINETY_DAYS = "90d"
    CUSTOM = "custom"

    def to_timedelta(self) -> timedelta:
        """Window length; CUSTOM falls back to seven days."""
        return _WINDOWS.get(self, timedelta(days=7))


_WINDOWS = {
    HistoryTimeRange.ONE_HOUR: timedelta(hours=1),
    HistoryTimeRange.TWENTY_FOUR_HOURS: timedelta(hours=24),
    HistoryTimeRange.SEVEN_DAYS: timedelta(days=7),
    HistoryTimeRange.THIRTY_DAYS: timedelta(days=30),
    HistoryTimeRange.NINETY_DAYS: timedelta(days=90),
}
