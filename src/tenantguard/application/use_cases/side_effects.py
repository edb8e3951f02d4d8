"""Post-commit side effects: decision cache invalidation and audit logging.

Both are best-effort. A failure is logged and never fails the mutation that
already committed.
"""

from collections.abc import Iterable

import structlog

from tenantguard.application.ports import AuditSink, DecisionCache
from tenantguard.domain.entities import AuditRecord

logger = structlog.get_logger(__name__)


async def invalidate_subjects(cache: DecisionCache | None, user_ids: Iterable[str]) -> None:
    if cache is None:
        return
    for user_id in sorted(set(user_ids)):
        try:
            removed = await cache.invalidate_subject(user_id)
        except Exception:
            logger.error("cache_invalidation_failed", subject_id=user_id, exc_info=True)
            continue
        logger.debug("cache_invalidated", subject_id=user_id, removed=removed)


async def emit_audit(sink: AuditSink | None, record: AuditRecord) -> None:
    if sink is None:
        return
    try:
        await sink.record(record)
    except Exception:
        logger.error(
            "audit_record_failed",
            action=record.action,
            entity=record.entity,
            entity_id=record.entity_id,
            exc_info=True,
        )
