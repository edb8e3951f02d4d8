"""Decision cache port."""

from dataclasses import dataclass
from typing import Protocol

from tenantguard.domain.entities import CachedDecision


@dataclass
class CacheStats:
    """Entry counts of a decision cache."""

    total: int
    live: int
    expired: int


class DecisionCache(Protocol):
    """Time-bounded store of prior decisions. Safe to drop at any time."""

    async def get(self, cache_key: str) -> CachedDecision | None: ...

    async def set(self, entry: CachedDecision) -> None: ...

    async def invalidate_subject(self, subject_id: str) -> int: ...

    async def purge_expired(self) -> int: ...

    async def stats(self, subject_id: str | None = None) -> CacheStats: ...
