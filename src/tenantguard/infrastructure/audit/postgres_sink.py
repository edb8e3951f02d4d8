"""Audit sink backed by the ``audit_log`` table."""

from uuid import uuid4

from psycopg_pool import AsyncConnectionPool

from tenantguard.domain.entities import AuditRecord
from tenantguard.infrastructure.persistence.postgres.serialization import jsonb


class PostgresAuditSink:
    """Writes audit records outside the caller's transaction."""

    def __init__(self, pool: AsyncConnectionPool) -> None:
        self._pool = pool

    async def record(self, record: AuditRecord) -> None:
        async with self._pool.connection() as conn:
            await conn.execute(
                "INSERT INTO audit_log "
                "(id, actor_id, action, entity, entity_id, timestamp, old_data, new_data) "
                "VALUES (%s, %s, %s, %s, %s, %s, %s, %s)",
                (
                    uuid4(),
                    record.actor_id,
                    record.action,
                    record.entity,
                    record.entity_id,
                    record.timestamp,
                    jsonb(record.old_data),
                    jsonb(record.new_data),
                ),
            )
