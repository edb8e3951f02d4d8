"""PostgreSQL Unit of Work implementation."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from psycopg_pool import AsyncConnectionPool

from tenantguard.infrastructure.persistence.postgres.assignment_repository import (
    PostgresAssignmentRepository,
)
from tenantguard.infrastructure.persistence.postgres.history_repository import (
    PostgresHistoryRepository,
)
from tenantguard.infrastructure.persistence.postgres.permission_repository import (
    PostgresPermissionRepository,
)
from tenantguard.infrastructure.persistence.postgres.role_repository import (
    PostgresRoleRepository,
)
from tenantguard.infrastructure.persistence.postgres.user_directory import (
    PostgresUserDirectory,
)
from tenantguard.infrastructure.persistence.postgres.user_permission_repository import (
    PostgresUserPermissionRepository,
)


class PostgresUnitOfWork:
    """PostgreSQL Unit of Work - one connection, one transaction."""

    def __init__(self, pool: AsyncConnectionPool) -> None:
        self._pool = pool
        self._conn: object | None = None
        self._conn_cm: object | None = None

    async def __aenter__(self) -> "PostgresUnitOfWork":
        self._conn_cm = self._pool.connection()
        self._conn = await self._conn_cm.__aenter__()
        self._permissions = PostgresPermissionRepository(self._conn)
        self._roles = PostgresRoleRepository(self._conn)
        self._assignments = PostgresAssignmentRepository(self._conn)
        self._user_permissions = PostgresUserPermissionRepository(self._conn)
        self._history = PostgresHistoryRepository(self._conn)
        self._users = PostgresUserDirectory(self._conn)
        return self

    async def __aexit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        if exc_type and self._conn:
            await self._conn.rollback()
        if self._conn_cm:
            await self._conn_cm.__aexit__(exc_type, exc_val, exc_tb)

    @property
    def permissions(self) -> PostgresPermissionRepository:
        return self._permissions

    @property
    def roles(self) -> PostgresRoleRepository:
        return self._roles

    @property
    def assignments(self) -> PostgresAssignmentRepository:
        return self._assignments

    @property
    def user_permissions(self) -> PostgresUserPermissionRepository:
        return self._user_permissions

    @property
    def history(self) -> PostgresHistoryRepository:
        return self._history

    @property
    def users(self) -> PostgresUserDirectory:
        return self._users

    async def commit(self) -> None:
        if self._conn:
            await self._conn.commit()

    async def rollback(self) -> None:
        if self._conn:
            await self._conn.rollback()


def create_uow_factory(pool: AsyncConnectionPool) -> object:
    """Create UnitOfWork factory (async context manager)."""

    @asynccontextmanager
    async def factory() -> AsyncIterator[PostgresUnitOfWork]:
        uow = PostgresUnitOfWork(pool)
        async with uow:
            try:
                yield uow
                await uow.commit()
            except BaseException:
                await uow.rollback()
                raise

    return factory
