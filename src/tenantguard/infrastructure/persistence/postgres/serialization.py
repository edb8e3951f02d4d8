"""Row <-> entity helpers for JSON columns."""

from dataclasses import asdict
from typing import Any
from uuid import UUID

from psycopg.types.json import Jsonb

from tenantguard.domain.entities import PermissionCondition


def jsonb(value: Any) -> Jsonb | None:
    return None if value is None else Jsonb(value)


def conditions_to_json(conditions: list[PermissionCondition] | None) -> Jsonb | None:
    if conditions is None:
        return None
    return Jsonb(
        [
            {
                "id": str(c.id),
                "condition_type": c.condition_type,
                "operator": c.operator,
                "value": c.value,
                "permission_id": str(c.permission_id) if c.permission_id else None,
                "description": c.description,
            }
            for c in conditions
        ]
    )


def conditions_from_json(data: list[dict] | None) -> list[PermissionCondition] | None:
    if data is None:
        return None
    return [
        PermissionCondition(
            id=UUID(d["id"]),
            condition_type=d["condition_type"],
            operator=d.get("operator") or "in",
            value=d.get("value") or {},
            permission_id=UUID(d["permission_id"]) if d.get("permission_id") else None,
            description=d.get("description"),
        )
        for d in data
    ]


def snapshot_to_json(snapshot: Any) -> Jsonb | None:
    if snapshot is None:
        return None
    return Jsonb({k: str(v) if isinstance(v, UUID) else v for k, v in asdict(snapshot).items()})
