"""Domain exceptions."""


class TenantGuardError(Exception):
    """Base exception for tenantguard."""

    pass


class NotFound(TenantGuardError):
    """Subject, role, permission or history entry does not resolve."""

    def __init__(self, entity: str, identifier: object = None) -> None:
        self.entity = entity
        self.identifier = identifier
        if identifier is None:
            super().__init__(f"{entity} not found")
        else:
            super().__init__(f"{entity} not found: {identifier}")


class Conflict(TenantGuardError):
    """Operation collides with existing state (duplicate name, duplicate assignment)."""

    pass


class PermissionDenied(TenantGuardError):
    """Actor is not allowed to perform the operation (tenant scope, system role, rollback)."""

    pass


class ValidationError(TenantGuardError):
    """Validation failed for input data."""

    pass


class StoreUnavailable(TenantGuardError):
    """Durable store or permission catalog cannot be reached."""

    pass
