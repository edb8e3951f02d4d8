"""Condition evaluator registry: condition_type -> predicate."""

from collections.abc import Iterable
from datetime import UTC, datetime

import structlog

from tenantguard.application.dto.evaluation import EvaluationContext
from tenantguard.application.ports import ConditionEvaluator
from tenantguard.domain.entities import PermissionCondition

logger = structlog.get_logger(__name__)

POSITIVE_OPERATORS = frozenset({"in", "eq", "between"})
NEGATED_OPERATORS = frozenset({"not_in", "neq", "not_between"})


def parse_time_of_day(value: object) -> float:
    """Parse ``HH:MM`` (or ``HH``) into fractional hours."""
    if not isinstance(value, str):
        raise ValueError(f"Invalid time of day: {value!r}")
    parts = value.strip().split(":")
    if len(parts) > 3 or not parts[0]:
        raise ValueError(f"Invalid time of day: {value!r}")
    hours = int(parts[0])
    minutes = int(parts[1]) if len(parts) > 1 else 0
    if not (0 <= hours <= 24 and 0 <= minutes < 60):
        raise ValueError(f"Invalid time of day: {value!r}")
    return hours + minutes / 60


def _payload_value(payload: dict, *keys: str) -> object:
    for key in keys:
        if key in payload:
            return payload[key]
    raise KeyError(keys[0])


def time_window(
    condition: PermissionCondition, context: EvaluationContext, subject_id: str
) -> bool:
    """Current time of day falls within ``[start_time, end_time)``.

    A window whose start is later than its end wraps around midnight.
    """
    start = parse_time_of_day(_payload_value(condition.value, "start_time", "startTime"))
    end = parse_time_of_day(_payload_value(condition.value, "end_time", "endTime"))
    now = context.current_time or datetime.now(UTC)
    current = now.hour + now.minute / 60
    if start <= end:
        return start <= current < end
    return current >= start or current < end


def department(
    condition: PermissionCondition, context: EvaluationContext, subject_id: str
) -> bool:
    """Context department is in ``value.departments``."""
    allowed = condition.value.get("departments") or []
    if not isinstance(allowed, list):
        raise ValueError("departments must be a list")
    return context.department_id is not None and context.department_id in allowed


def resource_owner(
    condition: PermissionCondition, context: EvaluationContext, subject_id: str
) -> bool:
    """Resource in context belongs to the subject."""
    return context.resource_id is not None and context.resource_id == subject_id


class ConditionRegistry:
    """Maps condition types to predicates. Unknown types fail closed."""

    def __init__(self, evaluators: dict[str, ConditionEvaluator] | None = None) -> None:
        self._evaluators: dict[str, ConditionEvaluator] = dict(evaluators or {})

    def register(self, condition_type: str, evaluator: ConditionEvaluator) -> None:
        self._evaluators[condition_type] = evaluator

    def supported_types(self) -> list[str]:
        return sorted(self._evaluators)

    def passes(
        self,
        condition: PermissionCondition,
        context: EvaluationContext,
        subject_id: str,
    ) -> bool:
        """Evaluate one condition; malformed payloads and unknown operators fail it."""
        evaluator = self._evaluators.get(condition.condition_type)
        if evaluator is None:
            logger.warning(
                "unknown_condition_type",
                condition_type=condition.condition_type,
                condition_id=str(condition.id),
            )
            return False

        operator = condition.operator or "in"
        if operator not in POSITIVE_OPERATORS and operator not in NEGATED_OPERATORS:
            logger.warning(
                "unknown_condition_operator",
                condition_type=condition.condition_type,
                operator=operator,
            )
            return False

        try:
            result = bool(evaluator(condition, context, subject_id))
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(
                "malformed_condition",
                condition_type=condition.condition_type,
                condition_id=str(condition.id),
                error=str(e),
            )
            return False
        return not result if operator in NEGATED_OPERATORS else result

    def first_failure(
        self,
        conditions: Iterable[PermissionCondition],
        context: EvaluationContext,
        subject_id: str,
    ) -> PermissionCondition | None:
        """Return the first failing condition, or None when all pass."""
        for condition in conditions:
            if not self.passes(condition, context, subject_id):
                return condition
        return None


def failure_reason(condition: PermissionCondition) -> str:
    return f"Condition failed: {condition.description or condition.condition_type}"


def default_registry() -> ConditionRegistry:
    """Registry with the built-in ``time``, ``department`` and ``resource_owner`` predicates."""
    return ConditionRegistry(
        {
            "time": time_window,
            "department": department,
            "resource_owner": resource_owner,
        }
    )
