"""PostgreSQL read-only user directory."""

from psycopg import AsyncConnection

from tenantguard.domain.entities import Subject
from tenantguard.domain.value_objects import LegacyRole, UserType


class PostgresUserDirectory:
    """Reads users from the identity-owned ``app_user`` table."""

    def __init__(self, conn: AsyncConnection) -> None:
        self._conn = conn

    async def get(self, user_id: str) -> Subject | None:
        """Get user by id."""
        cur = await self._conn.execute(
            "SELECT id, organization_id, property_id, department_id, legacy_role, "
            "user_type, email, first_name, last_name FROM app_user WHERE id = %s",
            (user_id,),
        )
        r = await cur.fetchone()
        if not r:
            return None
        return Subject(
            id=r[0],
            organization_id=r[1],
            property_id=r[2],
            department_id=r[3],
            legacy_role=LegacyRole(r[4]) if r[4] else None,
            user_type=UserType(r[5]) if r[5] else UserType.INTERNAL,
            email=r[6],
            first_name=r[7],
            last_name=r[8],
        )
