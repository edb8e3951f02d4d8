"""Seed the platform permission catalog and system roles."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import uuid4

import structlog

from tenantguard.domain.entities import CustomRole, Permission

logger = structlog.get_logger(__name__)

# (resource, action, scope, name, category)
SYSTEM_PERMISSIONS: tuple[tuple[str, str, str, str, str], ...] = (
    ("user", "create", "department", "Create Department Users", "HR"),
    ("user", "read", "own", "View Own Profile", "HR"),
    ("user", "update", "own", "Update Own Profile", "HR"),
    ("payslip", "read", "own", "View Own Payslips", "HR"),
    ("vacation", "create", "own", "Create Vacation Request", "HR"),
    ("training", "read", "department", "View Department Training", "Training"),
    ("document", "read", "department", "View Department Documents", "Documents"),
    ("role", "read", "organization", "View Organization Roles", "Administration"),
    ("role", "create", "organization", "Create Organization Roles", "Administration"),
    ("role", "update", "organization", "Update Organization Roles", "Administration"),
    ("role", "delete", "organization", "Delete Organization Roles", "Administration"),
    ("role", "assign", "organization", "Assign Organization Roles", "Administration"),
    ("role", "read", "property", "View Property Roles", "Administration"),
    ("role", "create", "property", "Create Property Roles", "Administration"),
    ("role", "update", "property", "Update Property Roles", "Administration"),
    ("role", "delete", "property", "Delete Property Roles", "Administration"),
    ("role", "assign", "property", "Assign Property Roles", "Administration"),
    ("permission", "grant", "organization", "Grant User Permissions", "Administration"),
    ("permission", "revoke", "organization", "Revoke User Permissions", "Administration"),
    ("organization", "access", "external", "Access Other Organizations", "Administration"),
    ("portal", "access", "client", "Client Portal Access", "Portal"),
    ("portal", "access", "vendor", "Vendor Portal Access", "Portal"),
)

# (name, description, priority)
SYSTEM_ROLES: tuple[tuple[str, str, int], ...] = (
    ("Platform Administrator", "Full platform access", 1000),
    ("Organization Owner", "Organization-wide access", 900),
    ("Property Manager", "Property-wide access", 800),
    ("Department Admin", "Department-specific access", 700),
    ("Staff Member", "Basic staff access", 100),
)


@dataclass
class BootstrapResult:
    """Counts of seeded catalog rows."""

    permissions: int
    roles_created: int


class BootstrapCatalogUseCase:
    """Idempotently upsert system permissions and create missing system roles."""

    def __init__(self, unit_of_work_factory: type) -> None:
        self._uow_factory = unit_of_work_factory

    async def execute(self) -> BootstrapResult:
        now = datetime.now(UTC)
        created = 0
        async with self._uow_factory() as uow:
            for resource, action, scope, name, category in SYSTEM_PERMISSIONS:
                await uow.permissions.upsert(
                    Permission(
                        id=uuid4(),
                        resource=resource,
                        action=action,
                        scope=scope,
                        name=name,
                        category=category,
                        is_system=True,
                    )
                )
            for name, description, priority in SYSTEM_ROLES:
                if await uow.roles.get_by_name(name, None, None):
                    continue
                await uow.roles.create(
                    CustomRole(
                        id=uuid4(),
                        name=name,
                        organization_id=None,
                        description=description,
                        priority=priority,
                        is_system_role=True,
                        created_at=now,
                        updated_at=now,
                    )
                )
                created += 1

        logger.info(
            "catalog_bootstrapped",
            permissions=len(SYSTEM_PERMISSIONS),
            roles_created=created,
        )
        return BootstrapResult(permissions=len(SYSTEM_PERMISSIONS), roles_created=created)
