"""User directory port - read-only view of identities owned elsewhere."""

from typing import Protocol

from tenantguard.domain.entities import Subject


class UserDirectory(Protocol):
    """Port for looking up users by id."""

    async def get(self, user_id: str) -> Subject | None: ...
