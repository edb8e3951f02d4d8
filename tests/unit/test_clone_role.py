"""Unit tests for role cloning, clone preview and lineage."""

from dataclasses import replace
from uuid import uuid4

import pytest

from tenantguard.application.dto.clone_dto import CloneRoleInput, PermissionFilters
from tenantguard.application.use_cases.role.clone_role import (
    CloneRoleUseCase,
    GetRoleLineageUseCase,
    PreviewCloneUseCase,
    suggest_names,
)
from tenantguard.domain.exceptions import Conflict, PermissionDenied, ValidationError
from tenantguard.domain.value_objects import RoleHistoryAction

from tests.conftest import make_permission, make_role


@pytest.fixture
def catalog(fake_uow):
    perms = {
        "guest_read": make_permission("guests", "read", "property", category="guests"),
        "guest_update": make_permission("guests", "update", "property", category="guests"),
        "billing_read": make_permission("billing", "read", "organization", category="finance"),
        "profile_read": make_permission("profile", "read", "own", category="profile"),
    }
    for p in perms.values():
        fake_uow.permissions.add(p)
    return perms


@pytest.fixture
def source(fake_uow, catalog):
    return fake_uow.roles.add(
        make_role("Front Desk", permissions=list(catalog.values()), priority=400)
    )


def _keys(permissions) -> list[str]:
    return [str(p.key) for p in permissions]


def test_permission_filters_keeps() -> None:
    guest = make_permission("guests", "read", "property", category="guests")
    uncategorized = make_permission("units", "read", "property")

    assert PermissionFilters().keeps(guest) is True
    assert PermissionFilters(include_categories=["finance"]).keeps(guest) is False
    assert PermissionFilters(exclude_categories=["guests"]).keeps(guest) is False
    assert PermissionFilters(exclude_categories=["guests"]).keeps(uncategorized) is True
    assert PermissionFilters(include_scopes=["own"]).keeps(guest) is False
    assert PermissionFilters(exclude_scopes=["property"], custom_selections=[guest.id]).keeps(
        guest
    )


def test_suggest_names_skips_taken() -> None:
    taken = {"Front Desk", "Front Desk (Copy)"}

    assert suggest_names("Front Desk", taken) == [
        "Front Desk (Copy 2)",
        "Front Desk (Copy 3)",
        "Front Desk (Copy 4)",
    ]


# --- PreviewCloneUseCase ---


@pytest.mark.asyncio
async def test_preview_include_categories(fake_uow, uow_factory, admin, source) -> None:
    preview = await PreviewCloneUseCase(uow_factory).execute(
        admin,
        CloneRoleInput(
            source_role_id=source.id,
            name="Guest Desk",
            filters=PermissionFilters(include_categories=["guests"]),
        ),
    )

    assert preview.is_valid is True
    assert _keys(preview.resulting_permissions) == [
        "guests.read.property",
        "guests.update.property",
    ]
    assert _keys(preview.removed_permissions) == ["billing.read.organization", "profile.read.own"]
    assert preview.naming_conflicts == []
    assert await fake_uow.roles.get_by_name("Guest Desk", "org-1", None) is None


@pytest.mark.asyncio
async def test_preview_custom_selection_overrides_exclusion(
    uow_factory, admin, source, catalog
) -> None:
    outside = uuid4()
    preview = await PreviewCloneUseCase(uow_factory).execute(
        admin,
        CloneRoleInput(
            source_role_id=source.id,
            name="Night Audit",
            filters=PermissionFilters(
                exclude_scopes=["organization"],
                custom_selections=[catalog["billing_read"].id, outside],
            ),
        ),
    )

    assert "billing.read.organization" in _keys(preview.resulting_permissions)
    assert preview.removed_permissions == []
    assert preview.validation_warnings == [
        "1 selected permission(s) are not granted by the source role"
    ]


@pytest.mark.asyncio
async def test_preview_reports_naming_conflict(fake_uow, uow_factory, admin, source) -> None:
    fake_uow.roles.add(make_role("Front Desk (Copy)"))

    preview = await PreviewCloneUseCase(uow_factory).execute(
        admin,
        CloneRoleInput(
            source_role_id=source.id,
            name="Front Desk",
            priority=5000,
            filters=PermissionFilters(include_scopes=["platform"]),
        ),
    )

    assert preview.is_valid is False
    assert preview.naming_conflicts == [
        "Front Desk (Copy 2)",
        "Front Desk (Copy 3)",
        "Front Desk (Copy 4)",
    ]
    assert len(preview.validation_errors) == 2
    assert "Clone will have no permissions" in preview.validation_warnings


@pytest.mark.asyncio
async def test_preview_of_other_org_role_denied(fake_uow, uow_factory, admin) -> None:
    foreign = fake_uow.roles.add(make_role("Spa", organization_id="org-2"))

    with pytest.raises(PermissionDenied):
        await PreviewCloneUseCase(uow_factory).execute(
            admin, CloneRoleInput(source_role_id=foreign.id, name="Spa")
        )


# --- CloneRoleUseCase ---


@pytest.mark.asyncio
async def test_clone_role_creates_filtered_copy(
    fake_uow, uow_factory, admin, source, catalog, mock_permission_checker, mock_audit_sink
) -> None:
    use_case = CloneRoleUseCase(uow_factory, mock_permission_checker, audit_sink=mock_audit_sink)

    clone = await use_case.execute(
        admin,
        CloneRoleInput(
            source_role_id=source.id,
            name="Front Desk Night",
            filters=PermissionFilters(exclude_categories=["finance"]),
        ),
    )

    assert clone.id != source.id
    assert clone.priority == 400
    assert clone.organization_id == "org-1"
    assert clone.cloned_from_id == source.id
    assert clone.metadata["clone"]["source_role_name"] == "Front Desk"
    assert clone.metadata["clone"]["cloned_by"] == admin.id
    assert clone.granted_permission_ids() == {
        catalog["guest_read"].id,
        catalog["guest_update"].id,
        catalog["profile_read"].id,
    }
    assert source.granted_permission_ids() == {p.id for p in catalog.values()}
    [entry] = fake_uow.history.entries
    assert entry.action == RoleHistoryAction.MODIFIED
    assert entry.context.operation_type == "role_cloned"
    assert entry.changes["permissions"] == {"kept": 3, "removed": 1}
    assert mock_audit_sink.record.await_args.args[0].action == "CLONE"


@pytest.mark.asyncio
async def test_clone_without_lineage(uow_factory, admin, source, mock_permission_checker) -> None:
    clone = await CloneRoleUseCase(uow_factory, mock_permission_checker).execute(
        admin,
        CloneRoleInput(
            source_role_id=source.id,
            name="Detached",
            preserve_lineage=False,
            metadata={"team": "ops"},
        ),
    )

    assert clone.cloned_from_id is None
    assert clone.metadata == {"team": "ops"}


@pytest.mark.asyncio
async def test_clone_name_conflict(uow_factory, admin, source, mock_permission_checker) -> None:
    with pytest.raises(Conflict, match="already exists"):
        await CloneRoleUseCase(uow_factory, mock_permission_checker).execute(
            admin, CloneRoleInput(source_role_id=source.id, name="front desk")
        )


@pytest.mark.asyncio
async def test_clone_invalid_input(uow_factory, admin, source, mock_permission_checker) -> None:
    with pytest.raises(ValidationError, match="must not be empty"):
        await CloneRoleUseCase(uow_factory, mock_permission_checker).execute(
            admin, CloneRoleInput(source_role_id=source.id, name="  ")
        )


@pytest.mark.asyncio
async def test_clone_system_role_into_actor_org(
    fake_uow, uow_factory, admin, catalog, mock_permission_checker
) -> None:
    system = fake_uow.roles.add(
        make_role(
            "Auditor",
            organization_id=None,
            is_system_role=True,
            permissions=[catalog["billing_read"]],
        )
    )

    preview = await PreviewCloneUseCase(uow_factory).execute(
        admin, CloneRoleInput(source_role_id=system.id, name="Auditor")
    )
    clone = await CloneRoleUseCase(uow_factory, mock_permission_checker).execute(
        admin, CloneRoleInput(source_role_id=system.id, name="Auditor")
    )

    assert "Clone of a system role is a regular custom role" in preview.validation_warnings
    assert clone.organization_id == "org-1"
    assert clone.is_system_role is False


# --- GetRoleLineageUseCase ---


@pytest.mark.asyncio
async def test_role_lineage(fake_uow, uow_factory, admin) -> None:
    root = fake_uow.roles.add(make_role("Reception"))
    child = fake_uow.roles.add(replace(make_role("Reception Night"), cloned_from_id=root.id))
    grandchild = fake_uow.roles.add(
        replace(make_role("Reception Night Junior"), cloned_from_id=child.id)
    )

    lineage = await GetRoleLineageUseCase(uow_factory).execute(admin, grandchild.id)
    middle = await GetRoleLineageUseCase(uow_factory).execute(admin, child.id)

    assert [r.id for r in lineage.ancestors] == [child.id, root.id]
    assert lineage.generation_level == 2
    assert lineage.lineage_path == [root.id, child.id, grandchild.id]
    assert lineage.clones == []
    assert [r.id for r in middle.clones] == [grandchild.id]


@pytest.mark.asyncio
async def test_role_lineage_stops_on_cycle(fake_uow, uow_factory, admin) -> None:
    a = make_role("A")
    b = fake_uow.roles.add(replace(make_role("B"), cloned_from_id=a.id))
    fake_uow.roles.add(replace(a, cloned_from_id=b.id))

    lineage = await GetRoleLineageUseCase(uow_factory).execute(admin, a.id)

    assert [r.id for r in lineage.ancestors] == [b.id]
