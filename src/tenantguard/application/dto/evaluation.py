"""Evaluation request and result DTOs."""

from dataclasses import asdict, dataclass, field, replace
from datetime import datetime
from typing import Any

from tenantguard.domain.entities import Decision


@dataclass(frozen=True)
class EvaluationContext:
    """Live request context a decision is evaluated against."""

    organization_id: str | None = None
    property_id: str | None = None
    department_id: str | None = None
    resource_id: str | None = None
    resource_owner_id: str | None = None
    current_time: datetime | None = None
    attributes: dict[str, Any] = field(default_factory=dict)

    def merged(self, other: "EvaluationContext | None") -> "EvaluationContext":
        """Return a copy where every field set on ``other`` wins."""
        if other is None:
            return self
        changes = {
            k: v
            for k, v in asdict(other).items()
            if k != "attributes" and v is not None
        }
        attributes = {**self.attributes, **other.attributes}
        return replace(self, attributes=attributes, **changes)

    def fingerprint_payload(self) -> dict[str, Any]:
        """Serializable view used to key the decision cache."""
        payload: dict[str, Any] = {}
        for k, v in asdict(self).items():
            if v is None or v == {}:
                continue
            payload[k] = v.isoformat() if isinstance(v, datetime) else v
        return payload


@dataclass(frozen=True)
class BulkCheck:
    """One item of a bulk evaluation."""

    resource: str
    action: str
    scope: str
    context: EvaluationContext | None = None

    @property
    def key(self) -> str:
        return f"{self.resource}.{self.action}.{self.scope}"


@dataclass
class BulkEvaluationResult:
    """Aggregate of a bulk evaluation."""

    results: dict[str, Decision]
    cached: int = 0
    evaluated: int = 0
    errors: list[str] = field(default_factory=list)
