"""Role history repository port."""

from typing import Protocol
from uuid import UUID

from tenantguard.application.dto.history_dto import HistoryQuery
from tenantguard.domain.entities import RoleHistoryEntry


class HistoryRepository(Protocol):
    """Append-only port: entries are added, never updated or deleted."""

    async def add(self, entry: RoleHistoryEntry) -> RoleHistoryEntry: ...

    async def get_by_id(self, entry_id: UUID) -> RoleHistoryEntry | None: ...

    async def search(
        self, query: HistoryQuery, *, offset: int = 0, limit: int = 50
    ) -> tuple[list[RoleHistoryEntry], int]: ...

    async def list_matching(self, query: HistoryQuery) -> list[RoleHistoryEntry]: ...
