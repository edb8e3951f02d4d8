"""Unit of Work port - transactional boundary."""

from collections.abc import AsyncIterator
from typing import Protocol

from tenantguard.application.ports.repositories import (
    AssignmentRepository,
    HistoryRepository,
    PermissionRepository,
    RoleRepository,
    UserDirectory,
    UserPermissionRepository,
)


class UnitOfWork(Protocol):
    """Unit of Work - manages transaction and repository access."""

    @property
    def permissions(self) -> PermissionRepository: ...

    @property
    def roles(self) -> RoleRepository: ...

    @property
    def assignments(self) -> AssignmentRepository: ...

    @property
    def user_permissions(self) -> UserPermissionRepository: ...

    @property
    def history(self) -> HistoryRepository: ...

    @property
    def users(self) -> UserDirectory: ...

    async def commit(self) -> None: ...

    async def rollback(self) -> None: ...


class UnitOfWorkFactory(Protocol):
    """Factory for creating UnitOfWork instances."""

    async def __call__(self) -> AsyncIterator[UnitOfWork]: ...
