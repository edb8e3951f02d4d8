"""Permission decisions."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from tenantguard.domain.value_objects import DecisionSource


@dataclass(frozen=True)
class Decision:
    """Result of one permission evaluation."""

    allowed: bool
    source: DecisionSource
    reason: str | None = None
    ttl: int | None = None
    conditions: Any = None


@dataclass(frozen=True)
class CachedDecision:
    """Decision stored in the decision cache."""

    cache_key: str
    subject_id: str
    allowed: bool
    expires_at: datetime
    reason: str | None = None
    conditions: Any = None

    def is_live(self, now: datetime) -> bool:
        return self.expires_at > now
