"""Permission checker port - authorization of administrative actions."""

from typing import Protocol

from tenantguard.application.dto.evaluation import EvaluationContext
from tenantguard.domain.entities import Subject


class PermissionChecker(Protocol):
    """Port for asking whether a subject holds a permission."""

    async def check(
        self,
        subject: Subject,
        resource: str,
        action: str,
        scope: str,
        context: EvaluationContext | None = None,
    ) -> bool: ...
