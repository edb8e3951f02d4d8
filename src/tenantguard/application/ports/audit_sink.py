"""Audit sink port - administrative audit log, distinct from role history."""

from typing import Protocol

from tenantguard.domain.entities import AuditRecord


class AuditSink(Protocol):
    """Port for recording administrative actions."""

    async def record(self, record: AuditRecord) -> None: ...
