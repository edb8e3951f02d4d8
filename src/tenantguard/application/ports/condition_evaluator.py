"""Condition evaluator port."""

from typing import Protocol

from tenantguard.application.dto.evaluation import EvaluationContext
from tenantguard.domain.entities import PermissionCondition


class ConditionEvaluator(Protocol):
    """Predicate for one condition type. Must not raise on malformed payloads."""

    def __call__(
        self,
        condition: PermissionCondition,
        context: EvaluationContext,
        subject_id: str,
    ) -> bool: ...
