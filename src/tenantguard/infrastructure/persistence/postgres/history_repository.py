"""PostgreSQL role history repository implementation (append-only)."""

from uuid import UUID

from psycopg import AsyncConnection

from tenantguard.application.dto.history_dto import HistoryQuery
from tenantguard.domain.entities import (
    AuditTrail,
    HistoryContext,
    RoleHistoryEntry,
    RoleSnapshot,
    UserSnapshot,
)
from tenantguard.domain.value_objects import RoleHistoryAction, RoleHistorySource
from tenantguard.infrastructure.persistence.postgres.serialization import (
    jsonb,
    snapshot_to_json,
)

_COLUMNS = (
    "id, timestamp, action, role_id, admin_id, user_id, user_role_id, reason, "
    "source, batch_id, parent_entry_id, operation_type, "
    "user_snapshot, role_snapshot, admin_snapshot, changes, "
    "ip_address, user_agent, session_id, request_id, "
    "organization_id, property_id, department_id"
)

_SORT_COLUMNS = {"timestamp": "timestamp", "action": "action"}

_SEARCH_FIELDS = (
    "reason",
    "user_snapshot->>'first_name'",
    "user_snapshot->>'last_name'",
    "user_snapshot->>'email'",
    "role_snapshot->>'name'",
    "admin_snapshot->>'first_name'",
    "admin_snapshot->>'last_name'",
    "admin_snapshot->>'email'",
)


def _user_snapshot(data: dict | None) -> UserSnapshot | None:
    return UserSnapshot(**data) if data else None


def _role_snapshot(data: dict | None) -> RoleSnapshot | None:
    if not data:
        return None
    return RoleSnapshot(**{**data, "id": UUID(data["id"])})


def _row_to_entry(r: tuple) -> RoleHistoryEntry:
    return RoleHistoryEntry(
        id=r[0],
        timestamp=r[1],
        action=RoleHistoryAction(r[2]),
        role_id=r[3],
        admin_id=r[4],
        user_id=r[5],
        user_role_id=r[6],
        reason=r[7],
        context=HistoryContext(
            source=RoleHistorySource(r[8]),
            batch_id=r[9],
            parent_entry_id=r[10],
            operation_type=r[11],
        ),
        user=_user_snapshot(r[12]),
        role=_role_snapshot(r[13]),
        admin=_user_snapshot(r[14]),
        changes=r[15],
        audit_trail=AuditTrail(
            ip_address=r[16],
            user_agent=r[17],
            session_id=r[18],
            request_id=r[19],
        ),
        organization_id=r[20],
        property_id=r[21],
        department_id=r[22],
    )


def _where(query: HistoryQuery) -> tuple[str, list[object]]:
    """AND-combined WHERE clause for a resolved history query."""
    conditions: list[str] = []
    params: list[object] = []
    if query.date_from:
        conditions.append("timestamp >= %s")
        params.append(query.date_from)
    if query.date_to:
        conditions.append("timestamp <= %s")
        params.append(query.date_to)
    if query.organization_id:
        conditions.append("organization_id = %s")
        params.append(query.organization_id)
    if query.property_id:
        conditions.append("(property_id = %s OR property_id IS NULL)")
        params.append(query.property_id)
    if query.user_ids:
        conditions.append("user_id = ANY(%s)")
        params.append(list(query.user_ids))
    if query.role_ids:
        conditions.append("role_id = ANY(%s)")
        params.append(list(query.role_ids))
    if query.admin_ids:
        conditions.append("admin_id = ANY(%s)")
        params.append(list(query.admin_ids))
    if query.actions:
        conditions.append("action = ANY(%s)")
        params.append([str(a) for a in query.actions])
    if query.sources:
        conditions.append("source = ANY(%s)")
        params.append([str(s) for s in query.sources])
    if query.batch_id:
        conditions.append("batch_id = %s")
        params.append(query.batch_id)
    if query.search_term:
        conditions.append("(" + " OR ".join(f"{f} ILIKE %s" for f in _SEARCH_FIELDS) + ")")
        params.extend([f"%{query.search_term}%"] * len(_SEARCH_FIELDS))
    where = " WHERE " + " AND ".join(conditions) if conditions else ""
    return where, params


def _order_by(query: HistoryQuery) -> str:
    column = _SORT_COLUMNS.get(query.sort_by, "timestamp")
    direction = "ASC" if query.sort_direction == "asc" else "DESC"
    return f" ORDER BY {column} {direction}, id"


class PostgresHistoryRepository:
    """History repository implementation. Rows are inserted, never updated."""

    def __init__(self, conn: AsyncConnection) -> None:
        self._conn = conn

    async def add(self, entry: RoleHistoryEntry) -> RoleHistoryEntry:
        """Append entry."""
        await self._conn.execute(
            f"INSERT INTO role_history ({_COLUMNS}) VALUES ("
            + ", ".join(["%s"] * 23)
            + ")",
            (
                entry.id,
                entry.timestamp,
                str(entry.action),
                entry.role_id,
                entry.admin_id,
                entry.user_id,
                entry.user_role_id,
                entry.reason,
                str(entry.context.source),
                entry.context.batch_id,
                entry.context.parent_entry_id,
                entry.context.operation_type,
                snapshot_to_json(entry.user),
                snapshot_to_json(entry.role),
                snapshot_to_json(entry.admin),
                jsonb(entry.changes),
                entry.audit_trail.ip_address,
                entry.audit_trail.user_agent,
                entry.audit_trail.session_id,
                entry.audit_trail.request_id,
                entry.organization_id,
                entry.property_id,
                entry.department_id,
            ),
        )
        return entry

    async def get_by_id(self, entry_id: UUID) -> RoleHistoryEntry | None:
        """Get entry by id."""
        cur = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM role_history WHERE id = %s",
            (entry_id,),
        )
        r = await cur.fetchone()
        return _row_to_entry(r) if r else None

    async def search(
        self, query: HistoryQuery, *, offset: int = 0, limit: int = 50
    ) -> tuple[list[RoleHistoryEntry], int]:
        """One sorted page of matching entries plus the total match count."""
        where, params = _where(query)
        cur = await self._conn.execute(f"SELECT count(*) FROM role_history{where}", tuple(params))
        total = (await cur.fetchone())[0]
        cur = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM role_history{where}{_order_by(query)} LIMIT %s OFFSET %s",
            tuple(params) + (limit, offset),
        )
        return [_row_to_entry(r) for r in await cur.fetchall()], total

    async def list_matching(self, query: HistoryQuery) -> list[RoleHistoryEntry]:
        """Every matching entry, sorted."""
        where, params = _where(query)
        cur = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM role_history{where}{_order_by(query)}",
            tuple(params),
        )
        return [_row_to_entry(r) for r in await cur.fetchall()]
