"""Tenant scoping rules for role administration."""

from tenantguard.domain.entities import CustomRole, Subject
from tenantguard.domain.exceptions import PermissionDenied
from tenantguard.domain.value_objects import PermissionScope


def resolve_tenant(
    actor: Subject,
    organization_id: str | None,
    property_id: str | None,
) -> tuple[str | None, str | None]:
    """Tenant for a new role: explicit input, else the actor's own context."""
    if actor.is_superuser:
        return organization_id, property_id
    organization_id = organization_id or actor.organization_id
    if organization_id != actor.organization_id:
        raise PermissionDenied("Cannot manage roles of another organization")
    property_id = property_id or actor.property_id
    if actor.property_id and property_id != actor.property_id:
        raise PermissionDenied("Cannot manage roles of another property")
    return organization_id, property_id


def can_access_role(actor: Subject, role: CustomRole) -> bool:
    """Platform roles are visible to everyone; tenant roles only inside their tenant."""
    if actor.is_superuser or role.organization_id is None:
        return True
    if role.organization_id != actor.organization_id:
        return False
    if actor.property_id and role.property_id and role.property_id != actor.property_id:
        return False
    return True


def ensure_role_access(actor: Subject, role: CustomRole) -> None:
    if not can_access_role(actor, role):
        raise PermissionDenied("Role belongs to another tenant")


def ensure_same_tenant(actor: Subject, target: Subject) -> None:
    """Non-superusers only manage users of their own organization (and property)."""
    if actor.is_superuser:
        return
    if target.organization_id != actor.organization_id:
        raise PermissionDenied("User belongs to another organization")
    if actor.property_id and target.property_id and target.property_id != actor.property_id:
        raise PermissionDenied("User belongs to another property")


def role_scope(property_id: str | None) -> str:
    """Permission scope that guards administration of a role."""
    return PermissionScope.PROPERTY if property_id else PermissionScope.ORGANIZATION
