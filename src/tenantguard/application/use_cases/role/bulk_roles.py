"""Bulk assign and bulk remove use cases."""

from uuid import uuid4

import structlog

from tenantguard.application.dto.role_dto import (
    AssignmentInput,
    BulkFailure,
    BulkOperationResult,
    RemovalInput,
)
from tenantguard.application.use_cases.role.assign_role import AssignRoleUseCase
from tenantguard.application.use_cases.role.remove_role import RemoveRoleUseCase
from tenantguard.domain.entities import HistoryContext, Subject
from tenantguard.domain.exceptions import TenantGuardError
from tenantguard.domain.value_objects import RoleHistoryAction, RoleHistorySource

logger = structlog.get_logger(__name__)


class BulkAssignRolesUseCase:
    """Assign each item in its own transaction, sharing one batch id."""

    def __init__(self, assign_role: AssignRoleUseCase) -> None:
        self._assign_role = assign_role

    async def execute(
        self,
        actor: Subject,
        items: list[AssignmentInput],
        batch_id: str | None = None,
    ) -> BulkOperationResult:
        result = BulkOperationResult(batch_id=batch_id or str(uuid4()))
        context = HistoryContext(
            source=RoleHistorySource.BULK,
            batch_id=result.batch_id,
            operation_type="bulk_assign",
        )
        for item in items:
            try:
                assignment = await self._assign_role.execute(
                    actor,
                    item,
                    action=RoleHistoryAction.BULK_ASSIGNED,
                    history_context=context,
                )
            except TenantGuardError as e:
                result.failed.append(BulkFailure(item=item, error=str(e)))
                continue
            except Exception as e:
                logger.error(
                    "bulk_assign_item_failed",
                    batch_id=result.batch_id,
                    user_id=item.user_id,
                    exc_info=True,
                )
                result.failed.append(BulkFailure(item=item, error=str(e)))
                continue
            result.successful.append(assignment)

        logger.info("bulk_assign_completed", batch_id=result.batch_id, **result.summary)
        return result


class BulkRemoveRolesUseCase:
    """Remove each item in its own transaction, sharing one batch id."""

    def __init__(self, remove_role: RemoveRoleUseCase) -> None:
        self._remove_role = remove_role

    async def execute(
        self,
        actor: Subject,
        items: list[RemovalInput],
        batch_id: str | None = None,
    ) -> BulkOperationResult:
        result = BulkOperationResult(batch_id=batch_id or str(uuid4()))
        context = HistoryContext(
            source=RoleHistorySource.BULK,
            batch_id=result.batch_id,
            operation_type="bulk_remove",
        )
        for item in items:
            try:
                assignment = await self._remove_role.execute(
                    actor,
                    item,
                    action=RoleHistoryAction.BULK_REMOVED,
                    history_context=context,
                )
            except TenantGuardError as e:
                result.failed.append(BulkFailure(item=item, error=str(e)))
                continue
            except Exception as e:
                logger.error(
                    "bulk_remove_item_failed",
                    batch_id=result.batch_id,
                    user_id=item.user_id,
                    exc_info=True,
                )
                result.failed.append(BulkFailure(item=item, error=str(e)))
                continue
            result.successful.append(assignment)

        logger.info("bulk_remove_completed", batch_id=result.batch_id, **result.summary)
        return result
