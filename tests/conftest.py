"""Pytest fixtures for tenantguard tests."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import UTC, datetime
from uuid import UUID, uuid4

import pytest

from tenantguard.application.dto.history_dto import HistoryQuery
from tenantguard.application.dto.role_dto import RoleQuery
from tenantguard.domain.entities import (
    CustomRole,
    Permission,
    RoleHistoryEntry,
    RolePermission,
    Subject,
    UserCustomRole,
    UserPermission,
)
from tenantguard.domain.value_objects import LegacyRole


# --- Fake repositories ---


class FakePermissionRepository:
    """In-memory permission catalog."""

    def __init__(self) -> None:
        self._by_id: dict[UUID, Permission] = {}

    def add(self, permission: Permission) -> Permission:
        self._by_id[permission.id] = permission
        return permission

    async def get_by_id(self, permission_id: UUID) -> Permission | None:
        return self._by_id.get(permission_id)

    async def get_by_key(self, resource: str, action: str, scope: str) -> Permission | None:
        for p in self._by_id.values():
            if (p.resource, p.action, p.scope) == (resource, action, scope):
                return p
        return None

    async def list_by_ids(self, permission_ids: list[UUID]) -> list[Permission]:
        return [self._by_id[pid] for pid in permission_ids if pid in self._by_id]

    async def list_all(self) -> list[Permission]:
        return sorted(self._by_id.values(), key=lambda p: (p.resource, p.action, p.scope))

    async def count(self) -> int:
        return len(self._by_id)

    async def upsert(self, permission: Permission) -> Permission:
        existing = await self.get_by_key(permission.resource, permission.action, permission.scope)
        if existing:
            existing.name = permission.name
            existing.description = permission.description
            existing.category = permission.category
            return existing
        return self.add(permission)


class FakeRoleRepository:
    """In-memory custom role repository."""

    def __init__(self) -> None:
        self._by_id: dict[UUID, CustomRole] = {}

    def add(self, role: CustomRole) -> CustomRole:
        self._by_id[role.id] = role
        return role

    async def get_by_id(self, role_id: UUID, include_deleted: bool = False) -> CustomRole | None:
        role = self._by_id.get(role_id)
        if not role or (not include_deleted and role.is_deleted):
            return None
        return role

    async def get_by_name(
        self, name: str, organization_id: str | None, property_id: str | None
    ) -> CustomRole | None:
        for role in self._by_id.values():
            if (
                not role.is_deleted
                and role.name.lower() == name.lower()
                and role.organization_id == organization_id
                and role.property_id == property_id
            ):
                return role
        return None

    async def list_for_tenant(
        self, organization_id: str | None, property_id: str | None = None
    ) -> list[CustomRole]:
        return sorted(
            (
                r
                for r in self._by_id.values()
                if not r.is_deleted
                and r.organization_id == organization_id
                and (not property_id or r.property_id in (property_id, None))
            ),
            key=lambda r: r.name,
        )

    async def list_clones(self, role_id: UUID) -> list[CustomRole]:
        return [
            r for r in self._by_id.values() if r.cloned_from_id == role_id and not r.is_deleted
        ]

    async def create(self, role: CustomRole) -> CustomRole:
        return self.add(role)

    async def update(self, role: CustomRole) -> None:
        current = self._by_id[role.id]
        self._by_id[role.id] = replace(role, permissions=current.permissions)

    async def soft_delete(self, role_id: UUID, deleted_at: datetime) -> None:
        role = self._by_id[role_id]
        self._by_id[role_id] = replace(
            role, deleted_at=deleted_at, is_active=False, updated_at=deleted_at
        )

    async def replace_permissions(
        self, role_id: UUID, permissions: list[RolePermission]
    ) -> None:
        self._by_id[role_id].permissions = list(permissions)

    async def list(self, query: RoleQuery) -> tuple[list[CustomRole], int]:
        def in_tenant(role: CustomRole) -> bool:
            if query.unscoped and query.organization_id is None:
                return True
            if role.organization_id != query.organization_id:
                return False
            return not query.property_id or role.property_id in (query.property_id, None)

        items = []
        for role in self._by_id.values():
            if role.is_deleted:
                continue
            if role.is_system_role:
                if not query.include_system_roles:
                    continue
            elif not in_tenant(role):
                continue
            if query.is_active is not None and role.is_active != query.is_active:
                continue
            if query.search:
                term = query.search.lower()
                if term not in role.name.lower() and term not in (role.description or "").lower():
                    continue
            items.append(role)
        items.sort(
            key=lambda r: getattr(r, query.sort_by),
            reverse=query.sort_direction == "desc",
        )
        start = (query.page - 1) * query.limit
        return items[start : start + query.limit], len(items)


class FakeAssignmentRepository:
    """In-memory user role assignments; joins roles for grant lookups."""

    def __init__(self, roles: FakeRoleRepository) -> None:
        self._roles = roles
        self._by_id: dict[UUID, UserCustomRole] = {}

    def add(self, assignment: UserCustomRole) -> UserCustomRole:
        self._by_id[assignment.id] = assignment
        return assignment

    async def get(self, user_id: str, role_id: UUID) -> UserCustomRole | None:
        for a in self._by_id.values():
            if a.user_id == user_id and a.role_id == role_id:
                return a
        return None

    async def list_for_user(self, user_id: str) -> list[UserCustomRole]:
        return [a for a in self._by_id.values() if a.user_id == user_id]

    async def list_for_role(self, role_id: UUID, active_only: bool = True) -> list[UserCustomRole]:
        return [
            a
            for a in self._by_id.values()
            if a.role_id == role_id and (a.is_active or not active_only)
        ]

    async def list_role_grants(
        self, user_id: str, permission_id: UUID
    ) -> list[tuple[UserCustomRole, RolePermission]]:
        grants = []
        for a in self._by_id.values():
            if a.user_id != user_id or not a.is_active:
                continue
            role = await self._roles.get_by_id(a.role_id)
            if not role or not role.is_active:
                continue
            for rp in role.permissions:
                if rp.permission_id == permission_id and rp.granted:
                    grants.append((a, rp))
        return grants

    async def list_expired(self, now: datetime) -> list[UserCustomRole]:
        return [
            a
            for a in self._by_id.values()
            if a.is_active and a.expires_at is not None and a.expires_at <= now
        ]

    async def create(self, assignment: UserCustomRole) -> UserCustomRole:
        return self.add(assignment)

    async def update(self, assignment: UserCustomRole) -> None:
        self._by_id[assignment.id] = assignment


class FakeUserPermissionRepository:
    """In-memory direct grants and denies."""

    def __init__(self) -> None:
        self._by_id: dict[UUID, UserPermission] = {}

    def add(self, user_permission: UserPermission) -> UserPermission:
        self._by_id[user_permission.id] = user_permission
        return user_permission

    async def get(self, user_id: str, permission_id: UUID) -> UserPermission | None:
        for up in self._by_id.values():
            if up.user_id == user_id and up.permission_id == permission_id:
                return up
        return None

    async def list_for_user(self, user_id: str) -> list[UserPermission]:
        return [up for up in self._by_id.values() if up.user_id == user_id]

    async def create(self, user_permission: UserPermission) -> UserPermission:
        return self.add(user_permission)

    async def update(self, user_permission: UserPermission) -> None:
        self._by_id[user_permission.id] = user_permission

    async def delete(self, user_permission_id: UUID) -> None:
        self._by_id.pop(user_permission_id, None)


def _matches(entry: RoleHistoryEntry, query: HistoryQuery) -> bool:
    if query.date_from and entry.timestamp < query.date_from:
        return False
    if query.date_to and entry.timestamp > query.date_to:
        return False
    if query.organization_id and entry.organization_id != query.organization_id:
        return False
    if query.property_id and entry.property_id not in (query.property_id, None):
        return False
    if query.user_ids and entry.user_id not in query.user_ids:
        return False
    if query.role_ids and entry.role_id not in query.role_ids:
        return False
    if query.admin_ids and entry.admin_id not in query.admin_ids:
        return False
    if query.actions and entry.action not in query.actions:
        return False
    if query.sources and entry.context.source not in query.sources:
        return False
    if query.batch_id and entry.context.batch_id != query.batch_id:
        return False
    if query.search_term:
        term = query.search_term.lower()
        haystack = [entry.reason]
        for snap in (entry.user, entry.admin):
            if snap:
                haystack += [snap.first_name, snap.last_name, snap.email]
        if entry.role:
            haystack.append(entry.role.name)
        if not any(term in (h or "").lower() for h in haystack):
            return False
    return True


class FakeHistoryRepository:
    """In-memory append-only history."""

    def __init__(self) -> None:
        self.entries: list[RoleHistoryEntry] = []

    async def add(self, entry: RoleHistoryEntry) -> RoleHistoryEntry:
        self.entries.append(entry)
        return entry

    async def get_by_id(self, entry_id: UUID) -> RoleHistoryEntry | None:
        for e in self.entries:
            if e.id == entry_id:
                return e
        return None

    async def list_matching(self, query: HistoryQuery) -> list[RoleHistoryEntry]:
        found = [e for e in self.entries if _matches(e, query)]
        found.sort(
            key=lambda e: getattr(e, query.sort_by),
            reverse=query.sort_direction != "asc",
        )
        return found

    async def search(
        self, query: HistoryQuery, *, offset: int = 0, limit: int = 50
    ) -> tuple[list[RoleHistoryEntry], int]:
        found = await self.list_matching(query)
        return found[offset : offset + limit], len(found)


class FakeUserDirectory:
    """In-memory user directory."""

    def __init__(self) -> None:
        self._by_id: dict[str, Subject] = {}

    def add(self, subject: Subject) -> Subject:
        self._by_id[subject.id] = subject
        return subject

    async def get(self, user_id: str) -> Subject | None:
        return self._by_id.get(user_id)


class FakeUnitOfWork:
    """In-memory Unit of Work with fake repositories."""

    def __init__(self) -> None:
        self.permissions = FakePermissionRepository()
        self.roles = FakeRoleRepository()
        self.assignments = FakeAssignmentRepository(self.roles)
        self.user_permissions = FakeUserPermissionRepository()
        self.history = FakeHistoryRepository()
        self.users = FakeUserDirectory()
        self.commits = 0

    async def commit(self) -> None:
        self.commits += 1

    async def rollback(self) -> None:
        pass


def shared_factory(uow: FakeUnitOfWork):
    """Factory yielding the same FakeUnitOfWork on every call."""

    @asynccontextmanager
    async def _factory() -> AsyncIterator[FakeUnitOfWork]:
        yield uow
        await uow.commit()

    return _factory


# --- Builders ---


def make_permission(
    resource: str,
    action: str,
    scope: str,
    *,
    category: str | None = None,
    conditions: list | None = None,
) -> Permission:
    return Permission(
        id=uuid4(),
        resource=resource,
        action=action,
        scope=scope,
        name=f"{resource} {action} {scope}",
        category=category,
        conditions=list(conditions or []),
    )


def make_role(
    name: str,
    organization_id: str | None = "org-1",
    *,
    permissions: list[Permission] | None = None,
    property_id: str | None = None,
    priority: int = 100,
    is_system_role: bool = False,
    is_active: bool = True,
) -> CustomRole:
    now = datetime.now(UTC)
    role_id = uuid4()
    return CustomRole(
        id=role_id,
        name=name,
        organization_id=organization_id,
        property_id=property_id,
        priority=priority,
        is_system_role=is_system_role,
        is_active=is_active,
        created_at=now,
        updated_at=now,
        permissions=[
            RolePermission(role_id=role_id, permission_id=p.id) for p in permissions or []
        ],
    )


def make_assignment(user_id: str, role: CustomRole, **kwargs) -> UserCustomRole:
    return UserCustomRole(
        id=uuid4(),
        user_id=user_id,
        role_id=role.id,
        assigned_at=kwargs.pop("assigned_at", datetime.now(UTC)),
        **kwargs,
    )


# --- Fixtures ---


@pytest.fixture
def fake_uow() -> FakeUnitOfWork:
    """Fresh in-memory UnitOfWork for each test."""
    return FakeUnitOfWork()


@pytest.fixture
def uow_factory(fake_uow: FakeUnitOfWork):
    """Factory returning async context manager over the test's FakeUnitOfWork."""
    return shared_factory(fake_uow)


@pytest.fixture
def mock_permission_checker():
    """AsyncMock for PermissionChecker - returns True by default."""
    from unittest.mock import AsyncMock

    mock = AsyncMock()
    mock.check.return_value = True
    return mock


@pytest.fixture
def mock_decision_cache():
    """AsyncMock for DecisionCache."""
    from unittest.mock import AsyncMock

    mock = AsyncMock()
    mock.invalidate_subject.return_value = 0
    return mock


@pytest.fixture
def mock_audit_sink():
    """AsyncMock for AuditSink."""
    from unittest.mock import AsyncMock

    return AsyncMock()


@pytest.fixture
def admin(fake_uow: FakeUnitOfWork) -> Subject:
    """Organization administrator without a legacy role shortcut."""
    return fake_uow.users.add(
        Subject(id="admin-1", organization_id="org-1", first_name="Ada", last_name="Admin")
    )


@pytest.fixture
def owner(fake_uow: FakeUnitOfWork) -> Subject:
    """Organization owner; allowed to roll back."""
    return fake_uow.users.add(
        Subject(
            id="owner-1",
            organization_id="org-1",
            legacy_role=LegacyRole.ORGANIZATION_OWNER,
            first_name="Olga",
            last_name="Owner",
        )
    )


@pytest.fixture
def superuser() -> Subject:
    return Subject(id="root", legacy_role=LegacyRole.PLATFORM_ADMIN)


@pytest.fixture
def member(fake_uow: FakeUnitOfWork) -> Subject:
    """Plain user of org-1."""
    return fake_uow.users.add(
        Subject(
            id="user-1",
            organization_id="org-1",
            department_id="dept-a",
            first_name="Uma",
            last_name="User",
            email="uma@example.com",
        )
    )


@pytest.fixture
def outsider(fake_uow: FakeUnitOfWork) -> Subject:
    """User of another organization."""
    return fake_uow.users.add(Subject(id="user-9", organization_id="org-2"))
