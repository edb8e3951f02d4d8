"""Audit sink that writes records to the structured log."""

import structlog

from tenantguard.domain.entities import AuditRecord

logger = structlog.get_logger("tenantguard.audit")


class StructlogAuditSink:
    """Emits one ``audit`` event per record."""

    async def record(self, record: AuditRecord) -> None:
        logger.info(
            "audit",
            actor_id=record.actor_id,
            action=record.action,
            entity=record.entity,
            entity_id=record.entity_id,
            timestamp=record.timestamp.isoformat(),
            old_data=record.old_data,
            new_data=record.new_data,
        )
