"""Unit tests for PermissionEngine."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
import pytest_asyncio

from tenantguard.application.dto.evaluation import BulkCheck, EvaluationContext
from tenantguard.application.dto.role_dto import AssignmentInput, RemovalInput, RoleUpdateInput
from tenantguard.application.use_cases.permission.grant_permission import GrantPermissionUseCase
from tenantguard.application.use_cases.role.assign_role import AssignRoleUseCase
from tenantguard.application.use_cases.role.remove_role import RemoveRoleUseCase
from tenantguard.application.use_cases.role.update_role import UpdateRoleUseCase
from tenantguard.domain.entities import PermissionCondition, Subject, UserPermission
from tenantguard.domain.exceptions import StoreUnavailable
from tenantguard.domain.value_objects import DecisionSource, LegacyRole, UserType
from tenantguard.infrastructure.cache.memory_cache import InMemoryDecisionCache
from tenantguard.infrastructure.permission.permission_engine import (
    PermissionEngine,
    build_cache_key,
)

from tests.conftest import make_assignment, make_permission, make_role

BUSINESS_HOURS = PermissionCondition(
    id=uuid4(),
    condition_type="time",
    value={"start_time": "09:00", "end_time": "17:00"},
    description="Business hours",
)


class _Clock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def _at(hour: int) -> EvaluationContext:
    return EvaluationContext(current_time=datetime(2026, 3, 2, hour, 0, tzinfo=UTC))


def _user_permission(user_id, permission, granted, **kwargs) -> UserPermission:
    return UserPermission(
        id=uuid4(),
        user_id=user_id,
        permission_id=permission.id,
        granted=granted,
        created_at=datetime.now(UTC),
        **kwargs,
    )


@pytest.fixture
def cache() -> InMemoryDecisionCache:
    return InMemoryDecisionCache()


@pytest_asyncio.fixture
async def engine(uow_factory, cache) -> PermissionEngine:
    engine = PermissionEngine(uow_factory, cache, force_enabled=True)
    assert await engine.initialize() is True
    return engine


@pytest.fixture
def guest_read(fake_uow):
    return fake_uow.permissions.add(make_permission("guest", "read", "property"))


# --- initialization ---


@pytest.mark.asyncio
async def test_evaluate_before_initialize_denies_with_legacy_source(
    uow_factory, cache, member
) -> None:
    """Until the catalog answers, every evaluation denies in legacy mode and nothing is cached."""
    engine = PermissionEngine(uow_factory, cache)

    decision = await engine.evaluate(member, "guest", "read", "property")

    assert decision.allowed is False
    assert decision.source is DecisionSource.LEGACY
    assert (await cache.stats()).total == 0


@pytest.mark.asyncio
async def test_initialize_probes_catalog(uow_factory, cache, guest_read) -> None:
    """initialize() enables the catalog when the probe succeeds."""
    engine = PermissionEngine(uow_factory, cache)

    assert await engine.initialize() is True
    assert engine.catalog_available is True
    assert engine.status()["legacy_mode"] is False


@pytest.mark.asyncio
async def test_initialize_skip_stays_in_legacy_mode(uow_factory, cache) -> None:
    engine = PermissionEngine(uow_factory, cache, skip_init=True)

    assert await engine.initialize() is False
    assert engine.catalog_available is False


@pytest.mark.asyncio
async def test_initialize_retries_then_gives_up(fake_uow, uow_factory, cache) -> None:
    """A catalog that keeps failing is probed probe_attempts times, then legacy mode."""
    fake_uow.permissions.count = AsyncMock(side_effect=StoreUnavailable("down"))
    engine = PermissionEngine(uow_factory, cache, probe_attempts=2, probe_wait=0)

    assert await engine.initialize() is False
    assert fake_uow.permissions.count.await_count == 2
    assert engine.catalog_available is False


# --- resolution order ---


@pytest.mark.asyncio
async def test_superuser_allowed_for_anything(engine) -> None:
    """Superusers are allowed every (resource, action, scope), source role."""
    root = Subject(id="root", legacy_role=LegacyRole.PLATFORM_ADMIN)

    for resource, action, scope in [
        ("guest", "read", "property"),
        ("nothing", "at", "all"),
        ("role", "delete", "organization"),
    ]:
        decision = await engine.evaluate(root, resource, action, scope)
        assert decision.allowed is True
        assert decision.source is DecisionSource.ROLE


@pytest.mark.asyncio
async def test_unknown_permission_denied(engine, member) -> None:
    decision = await engine.evaluate(member, "ghost", "read", "own")

    assert decision.allowed is False
    assert decision.source is DecisionSource.DEFAULT
    assert decision.reason == "Permission not found"


@pytest.mark.asyncio
async def test_no_grant_denied_by_default(engine, member, guest_read) -> None:
    decision = await engine.evaluate(member, "guest", "read", "property")

    assert decision.allowed is False
    assert decision.source is DecisionSource.DEFAULT
    assert decision.reason == "No matching permission found"


@pytest.mark.asyncio
async def test_legacy_pattern_grants(engine, guest_read) -> None:
    """Legacy PROPERTY_MANAGER matches *.*.property."""
    manager = Subject(id="pm-1", organization_id="org-1", legacy_role=LegacyRole.PROPERTY_MANAGER)

    decision = await engine.evaluate(manager, "guest", "read", "property")

    assert decision.allowed is True
    assert decision.source is DecisionSource.ROLE
    assert "PROPERTY_MANAGER" in decision.reason


@pytest.mark.asyncio
async def test_role_grant_allows(engine, fake_uow, member, guest_read) -> None:
    role = fake_uow.roles.add(make_role("Front desk", permissions=[guest_read]))
    fake_uow.assignments.add(make_assignment(member.id, role))

    decision = await engine.evaluate(member, "guest", "read", "property")

    assert decision.allowed is True
    assert decision.source is DecisionSource.ROLE


@pytest.mark.asyncio
async def test_expired_assignment_ignored(engine, fake_uow, member, guest_read) -> None:
    role = fake_uow.roles.add(make_role("Temp", permissions=[guest_read]))
    fake_uow.assignments.add(
        make_assignment(member.id, role, expires_at=datetime.now(UTC) - timedelta(minutes=1))
    )

    decision = await engine.evaluate(member, "guest", "read", "property")

    assert decision.allowed is False


@pytest.mark.asyncio
async def test_inactive_role_ignored(engine, fake_uow, member, guest_read) -> None:
    role = fake_uow.roles.add(make_role("Off", permissions=[guest_read], is_active=False))
    fake_uow.assignments.add(make_assignment(member.id, role))

    decision = await engine.evaluate(member, "guest", "read", "property")

    assert decision.allowed is False


@pytest.mark.asyncio
@pytest.mark.parametrize("deny_first", [True, False])
async def test_explicit_deny_overrides_role_grant(
    engine, fake_uow, member, guest_read, deny_first
) -> None:
    """A user-level deny wins over a role grant whatever order they were created in."""
    role = make_role("Front desk", permissions=[guest_read])
    deny = _user_permission(member.id, guest_read, granted=False)
    if deny_first:
        fake_uow.user_permissions.add(deny)
        fake_uow.roles.add(role)
        fake_uow.assignments.add(make_assignment(member.id, role))
    else:
        fake_uow.roles.add(role)
        fake_uow.assignments.add(make_assignment(member.id, role))
        fake_uow.user_permissions.add(deny)

    decision = await engine.evaluate(member, "guest", "read", "property")

    assert decision.allowed is False
    assert decision.source is DecisionSource.USER


@pytest.mark.asyncio
async def test_expired_deny_is_ignored(engine, fake_uow, member, guest_read) -> None:
    role = fake_uow.roles.add(make_role("Front desk", permissions=[guest_read]))
    fake_uow.assignments.add(make_assignment(member.id, role))
    fake_uow.user_permissions.add(
        _user_permission(
            member.id,
            guest_read,
            granted=False,
            expires_at=datetime.now(UTC) - timedelta(hours=1),
        )
    )

    decision = await engine.evaluate(member, "guest", "read", "property")

    assert decision.allowed is True
    assert decision.source is DecisionSource.ROLE


@pytest.mark.asyncio
async def test_direct_grant_allows_with_user_source(engine, fake_uow, member, guest_read) -> None:
    fake_uow.user_permissions.add(_user_permission(member.id, guest_read, granted=True))

    decision = await engine.evaluate(member, "guest", "read", "property")

    assert decision.allowed is True
    assert decision.source is DecisionSource.USER


# --- conditions ---


@pytest.mark.asyncio
async def test_time_window_condition(engine, fake_uow, member) -> None:
    """Permission with a 09:00-17:00 window allows at 10:00 and denies at 20:00 citing it."""
    permission = fake_uow.permissions.add(
        make_permission("report", "read", "property", conditions=[BUSINESS_HOURS])
    )
    role = fake_uow.roles.add(make_role("Analyst", permissions=[permission]))
    fake_uow.assignments.add(make_assignment(member.id, role))

    morning = await engine.evaluate(member, "report", "read", "property", _at(10))
    evening = await engine.evaluate(member, "report", "read", "property", _at(20))

    assert morning.allowed is True
    assert evening.allowed is False
    assert evening.reason == "Condition failed: Business hours"
    assert evening.conditions == {"start_time": "09:00", "end_time": "17:00"}


@pytest.mark.asyncio
async def test_assignment_conditions_take_precedence(engine, fake_uow, member, guest_read) -> None:
    """Conditions on the assignment replace those of the permission."""
    guest_read.conditions = [BUSINESS_HOURS]
    role = fake_uow.roles.add(make_role("Night shift", permissions=[guest_read]))
    night = PermissionCondition(
        id=uuid4(),
        condition_type="time",
        value={"start_time": "22:00", "end_time": "06:00"},
        description="Night shift",
    )
    fake_uow.assignments.add(make_assignment(member.id, role, conditions=[night]))

    at_23 = await engine.evaluate(member, "guest", "read", "property", _at(23))
    at_10 = await engine.evaluate(member, "guest", "read", "property", _at(10))

    assert at_23.allowed is True
    assert at_10.allowed is False
    assert at_10.reason == "Condition failed: Night shift"


@pytest.mark.asyncio
async def test_unknown_condition_type_fails_closed(engine, fake_uow, member) -> None:
    permission = fake_uow.permissions.add(
        make_permission(
            "invoice",
            "read",
            "own",
            conditions=[PermissionCondition(id=uuid4(), condition_type="geo", value={})],
        )
    )
    fake_uow.user_permissions.add(_user_permission(member.id, permission, granted=True))

    decision = await engine.evaluate(member, "invoice", "read", "own")

    assert decision.allowed is False
    assert decision.source is DecisionSource.USER
    assert decision.reason == "Condition failed: geo"


# --- cross organization ---


@pytest.mark.asyncio
async def test_external_user_denied_other_organization(engine, fake_uow, guest_read) -> None:
    vendor = Subject(id="v-1", organization_id="org-1", user_type=UserType.VENDOR)
    fake_uow.user_permissions.add(_user_permission(vendor.id, guest_read, granted=True))

    decision = await engine.evaluate(
        vendor, "guest", "read", "property", EvaluationContext(organization_id="org-2")
    )

    assert decision.allowed is False
    assert decision.source is DecisionSource.VALIDATION


@pytest.mark.asyncio
async def test_external_user_with_external_access_passes(engine, fake_uow, guest_read) -> None:
    external = fake_uow.permissions.add(make_permission("organization", "access", "external"))
    vendor = Subject(id="v-1", organization_id="org-1", user_type=UserType.VENDOR)
    fake_uow.user_permissions.add(_user_permission(vendor.id, external, granted=True))
    fake_uow.user_permissions.add(_user_permission(vendor.id, guest_read, granted=True))

    decision = await engine.evaluate(
        vendor, "guest", "read", "property", EvaluationContext(organization_id="org-2")
    )

    assert decision.allowed is True
    assert decision.source is DecisionSource.USER


@pytest.mark.asyncio
async def test_internal_user_not_subject_to_cross_organization_check(
    engine, fake_uow, member, guest_read
) -> None:
    fake_uow.user_permissions.add(_user_permission(member.id, guest_read, granted=True))

    decision = await engine.evaluate(
        member, "guest", "read", "property", EvaluationContext(organization_id="org-2")
    )

    assert decision.allowed is True


# --- caching ---


@pytest.mark.asyncio
async def test_second_evaluation_served_from_cache(engine, fake_uow, member, guest_read) -> None:
    role = fake_uow.roles.add(make_role("Front desk", permissions=[guest_read]))
    fake_uow.assignments.add(make_assignment(member.id, role))

    first = await engine.evaluate(member, "guest", "read", "property")
    second = await engine.evaluate(member, "guest", "read", "property")

    assert first.source is DecisionSource.ROLE
    assert second.source is DecisionSource.CACHED
    assert (second.allowed, second.reason) == (first.allowed, first.reason)
    assert 0 < second.ttl <= 3600


@pytest.mark.asyncio
async def test_cached_allow_expires_with_assignment(
    uow_factory, fake_uow, member, guest_read
) -> None:
    """An allow from an expiring assignment is cached no longer than the assignment lives."""
    clock = _Clock(datetime(2026, 3, 2, 12, 0, tzinfo=UTC))
    engine = PermissionEngine(
        uow_factory, InMemoryDecisionCache(clock=clock), force_enabled=True, clock=clock
    )
    await engine.initialize()
    role = fake_uow.roles.add(make_role("Temp", permissions=[guest_read]))
    fake_uow.assignments.add(
        make_assignment(member.id, role, expires_at=clock.now + timedelta(minutes=5))
    )

    first = await engine.evaluate(member, "guest", "read", "property")
    clock.advance(minutes=1)
    cached = await engine.evaluate(member, "guest", "read", "property")
    clock.advance(minutes=29)
    later = await engine.evaluate(member, "guest", "read", "property")

    assert (first.allowed, first.source) == (True, DecisionSource.ROLE)
    assert (cached.allowed, cached.source) == (True, DecisionSource.CACHED)
    assert cached.ttl <= 240
    assert (later.allowed, later.source) == (False, DecisionSource.DEFAULT)


@pytest.mark.asyncio
async def test_cached_deny_expires_with_override(uow_factory, fake_uow, member, guest_read) -> None:
    clock = _Clock(datetime(2026, 3, 2, 12, 0, tzinfo=UTC))
    engine = PermissionEngine(
        uow_factory, InMemoryDecisionCache(clock=clock), force_enabled=True, clock=clock
    )
    await engine.initialize()
    role = fake_uow.roles.add(make_role("Front desk", permissions=[guest_read]))
    fake_uow.assignments.add(make_assignment(member.id, role))
    fake_uow.user_permissions.add(
        _user_permission(
            member.id, guest_read, granted=False, expires_at=clock.now + timedelta(minutes=10)
        )
    )

    denied = await engine.evaluate(member, "guest", "read", "property")
    clock.advance(minutes=11)
    allowed = await engine.evaluate(member, "guest", "read", "property")

    assert (denied.allowed, denied.source) == (False, DecisionSource.USER)
    assert (allowed.allowed, allowed.source) == (True, DecisionSource.ROLE)


def test_cache_key_depends_on_context() -> None:
    user = Subject(id="u")

    def key(subject: Subject, department: str) -> str:
        return build_cache_key(
            subject, "guest", "read", "property", EvaluationContext(department_id=department)
        )

    assert key(user, "a") != key(user, "b")
    assert key(user, "a") == key(Subject(id="u"), "a")
    assert key(user, "a").startswith("perm:u:guest:read:property:")


def test_cache_key_depends_on_legacy_role_and_user_type() -> None:
    plain = Subject(id="u")
    keys = {
        build_cache_key(subject, "guest", "read", "property", EvaluationContext())
        for subject in (
            plain,
            Subject(id="u", legacy_role=LegacyRole.PLATFORM_ADMIN),
            Subject(id="u", legacy_role=LegacyRole.STAFF),
            Subject(id="u", user_type=UserType.VENDOR),
        )
    }

    assert len(keys) == 4


@pytest.mark.asyncio
async def test_demoted_superuser_is_not_served_cached_allow(engine, guest_read) -> None:
    """The identity layer drops the admin role; the earlier allow must not be reused."""
    root = Subject(id="root", organization_id="org-1", legacy_role=LegacyRole.PLATFORM_ADMIN)
    assert (await engine.evaluate(root, "guest", "read", "property")).allowed is True

    demoted = Subject(id="root", organization_id="org-1")
    decision = await engine.evaluate(demoted, "guest", "read", "property")

    assert decision.allowed is False
    assert decision.source is DecisionSource.DEFAULT


@pytest.mark.asyncio
async def test_cache_failure_does_not_fail_evaluation(
    uow_factory, fake_uow, member, guest_read
) -> None:
    broken = AsyncMock()
    broken.get.side_effect = RuntimeError("cache down")
    broken.set.side_effect = RuntimeError("cache down")
    engine = PermissionEngine(uow_factory, broken, force_enabled=True)
    await engine.initialize()
    fake_uow.user_permissions.add(_user_permission(member.id, guest_read, granted=True))

    decision = await engine.evaluate(member, "guest", "read", "property")

    assert decision.allowed is True
    assert decision.source is DecisionSource.USER


@pytest.mark.asyncio
async def test_store_failure_becomes_deny(engine, fake_uow, member) -> None:
    fake_uow.permissions.get_by_key = AsyncMock(side_effect=RuntimeError("boom"))

    decision = await engine.evaluate(member, "guest", "read", "property")

    assert decision.allowed is False
    assert decision.source is DecisionSource.DEFAULT
    assert decision.reason == "Evaluation error: boom"


@pytest.mark.asyncio
async def test_clear_cache_and_stats(engine, cache, member, guest_read) -> None:
    await engine.evaluate(member, "guest", "read", "property")
    assert (await engine.cache_stats(member.id)).live == 1

    assert await engine.clear_cache(member.id) == 1
    assert (await engine.cache_stats()).total == 0


# --- mutations invalidate the cache ---


@pytest.mark.asyncio
async def test_role_permission_change_invalidates_cached_decision(
    engine, cache, fake_uow, uow_factory, admin, member, guest_read, mock_permission_checker
) -> None:
    role = fake_uow.roles.add(make_role("Front desk", permissions=[guest_read]))
    fake_uow.assignments.add(make_assignment(member.id, role))
    assert (await engine.evaluate(member, "guest", "read", "property")).allowed is True

    update = UpdateRoleUseCase(uow_factory, mock_permission_checker, cache)
    await update.execute(admin, role.id, RoleUpdateInput(permission_ids=[]))

    decision = await engine.evaluate(member, "guest", "read", "property")
    assert decision.allowed is False
    assert decision.source is not DecisionSource.CACHED


@pytest.mark.asyncio
async def test_assign_revoke_grant_deny_scenario(
    engine, cache, fake_uow, uow_factory, admin, member, guest_read, mock_permission_checker
) -> None:
    """Role grant, removal, direct grant, then explicit deny that survives re-assignment."""
    role = fake_uow.roles.add(make_role("Front desk", permissions=[guest_read]))
    assign = AssignRoleUseCase(uow_factory, mock_permission_checker, cache)
    remove = RemoveRoleUseCase(uow_factory, mock_permission_checker, cache)
    grant = GrantPermissionUseCase(uow_factory, mock_permission_checker, cache)

    async def check():
        return await engine.evaluate(member, "guest", "read", "property")

    await assign.execute(admin, AssignmentInput(user_id=member.id, role_id=role.id))
    decision = await check()
    assert (decision.allowed, decision.source) == (True, DecisionSource.ROLE)

    await remove.execute(admin, RemovalInput(user_id=member.id, role_id=role.id))
    decision = await check()
    assert (decision.allowed, decision.source) == (False, DecisionSource.DEFAULT)

    await grant.execute(admin, member.id, guest_read.id, granted=True)
    decision = await check()
    assert (decision.allowed, decision.source) == (True, DecisionSource.USER)

    await grant.execute(admin, member.id, guest_read.id, granted=False)
    decision = await check()
    assert (decision.allowed, decision.source) == (False, DecisionSource.USER)

    await assign.execute(admin, AssignmentInput(user_id=member.id, role_id=role.id))
    decision = await check()
    assert (decision.allowed, decision.source) == (False, DecisionSource.USER)


# --- bulk and effective permissions ---


@pytest.mark.asyncio
async def test_evaluate_bulk(engine, fake_uow, member, guest_read) -> None:
    fake_uow.user_permissions.add(_user_permission(member.id, guest_read, granted=True))
    checks = [
        BulkCheck("guest", "read", "property"),
        BulkCheck("ghost", "read", "own"),
    ]

    first = await engine.evaluate_bulk(member, checks)
    second = await engine.evaluate_bulk(member, checks)

    assert first.results["guest.read.property"].allowed is True
    assert first.results["ghost.read.own"].allowed is False
    assert first.evaluated == 2
    assert second.cached == 2
    assert first.errors == []


@pytest.mark.asyncio
async def test_evaluate_bulk_counts_repeated_key_once(engine, fake_uow, member, guest_read) -> None:
    fake_uow.user_permissions.add(_user_permission(member.id, guest_read, granted=True))
    checks = [BulkCheck("guest", "read", "property"), BulkCheck("guest", "read", "property")]

    result = await engine.evaluate_bulk(member, checks)

    assert list(result.results) == ["guest.read.property"]
    assert (result.evaluated, result.cached) == (1, 0)


@pytest.mark.asyncio
async def test_effective_permissions(engine, fake_uow, member, guest_read) -> None:
    guest_write = fake_uow.permissions.add(make_permission("guest", "update", "property"))
    fake_uow.permissions.add(make_permission("invoice", "read", "organization"))
    role = fake_uow.roles.add(make_role("Front desk", permissions=[guest_read, guest_write]))
    fake_uow.assignments.add(make_assignment(member.id, role))
    fake_uow.user_permissions.add(_user_permission(member.id, guest_write, granted=False))

    effective = await engine.get_effective_permissions(member)

    assert [str(p.key) for p in effective] == ["guest.read.property"]


@pytest.mark.asyncio
async def test_check_returns_bool(engine, member, guest_read) -> None:
    assert await engine.check(member, "guest", "read", "property") is False
