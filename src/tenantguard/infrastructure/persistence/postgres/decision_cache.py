"""PostgreSQL-backed decision cache."""

from datetime import UTC, datetime

from psycopg_pool import AsyncConnectionPool

from tenantguard.application.ports import CacheStats
from tenantguard.domain.entities import CachedDecision
from tenantguard.infrastructure.persistence.postgres.serialization import jsonb


class PostgresDecisionCache:
    """Decision cache in the ``permission_cache`` table.

    Runs on its own pooled connections in autocommit mode so cache traffic
    never joins a caller's transaction.
    """

    def __init__(self, pool: AsyncConnectionPool) -> None:
        self._pool = pool

    async def get(self, cache_key: str) -> CachedDecision | None:
        async with self._pool.connection() as conn:
            cur = await conn.execute(
                "SELECT cache_key, user_id, allowed, expires_at, reason, conditions "
                "FROM permission_cache WHERE cache_key = %s AND expires_at > %s",
                (cache_key, datetime.now(UTC)),
            )
            r = await cur.fetchone()
        if not r:
            return None
        return CachedDecision(
            cache_key=r[0],
            subject_id=r[1],
            allowed=r[2],
            expires_at=r[3],
            reason=r[4],
            conditions=r[5],
        )

    async def set(self, entry: CachedDecision) -> None:
        async with self._pool.connection() as conn:
            await conn.execute(
                "INSERT INTO permission_cache "
                "(cache_key, user_id, allowed, expires_at, reason, conditions) "
                "VALUES (%s, %s, %s, %s, %s, %s) "
                "ON CONFLICT (cache_key) DO UPDATE SET allowed = EXCLUDED.allowed, "
                "expires_at = EXCLUDED.expires_at, reason = EXCLUDED.reason, "
                "conditions = EXCLUDED.conditions",
                (
                    entry.cache_key,
                    entry.subject_id,
                    entry.allowed,
                    entry.expires_at,
                    entry.reason,
                    jsonb(entry.conditions),
                ),
            )

    async def invalidate_subject(self, subject_id: str) -> int:
        async with self._pool.connection() as conn:
            cur = await conn.execute(
                "DELETE FROM permission_cache WHERE user_id = %s",
                (subject_id,),
            )
            return cur.rowcount

    async def purge_expired(self) -> int:
        async with self._pool.connection() as conn:
            cur = await conn.execute(
                "DELETE FROM permission_cache WHERE expires_at <= %s",
                (datetime.now(UTC),),
            )
            return cur.rowcount

    async def stats(self, subject_id: str | None = None) -> CacheStats:
        q = (
            "SELECT count(*), count(*) FILTER (WHERE expires_at > %s) "
            "FROM permission_cache"
        )
        params: tuple = (datetime.now(UTC),)
        if subject_id:
            q += " WHERE user_id = %s"
            params += (subject_id,)
        async with self._pool.connection() as conn:
            cur = await conn.execute(q, params)
            r = await cur.fetchone()
        total, live = r[0], r[1]
        return CacheStats(total=total, live=live, expired=total - live)
