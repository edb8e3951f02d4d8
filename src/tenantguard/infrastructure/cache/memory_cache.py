"""In-process decision cache."""

from collections import OrderedDict
from collections.abc import Callable
from datetime import UTC, datetime

import structlog

from tenantguard.application.ports import CacheStats
from tenantguard.domain.entities import CachedDecision

logger = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class InMemoryDecisionCache:
    """Bounded insertion-ordered cache; the oldest entry is evicted when full."""

    def __init__(
        self,
        max_size: int = 10000,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._max_size = max_size
        self._clock = clock
        self._entries: OrderedDict[str, CachedDecision] = OrderedDict()

    async def get(self, cache_key: str) -> CachedDecision | None:
        entry = self._entries.get(cache_key)
        if entry is None:
            return None
        if not entry.is_live(self._clock()):
            self._entries.pop(cache_key, None)
            return None
        return entry

    async def set(self, entry: CachedDecision) -> None:
        self._entries.pop(entry.cache_key, None)
        self._entries[entry.cache_key] = entry
        while len(self._entries) > self._max_size:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("decision_cache_evicted", cache_key=evicted)

    async def invalidate_subject(self, subject_id: str) -> int:
        keys = [k for k, v in self._entries.items() if v.subject_id == subject_id]
        for k in keys:
            del self._entries[k]
        return len(keys)

    async def purge_expired(self) -> int:
        now = self._clock()
        keys = [k for k, v in self._entries.items() if not v.is_live(now)]
        for k in keys:
            del self._entries[k]
        return len(keys)

    async def stats(self, subject_id: str | None = None) -> CacheStats:
        now = self._clock()
        entries = [
            v for v in self._entries.values() if subject_id is None or v.subject_id == subject_id
        ]
        live = sum(1 for v in entries if v.is_live(now))
        return CacheStats(total=len(entries), live=live, expired=len(entries) - live)
