"""Application entry point and composition root."""

import argparse
import asyncio
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

import structlog
from psycopg_pool import AsyncConnectionPool

from tenantguard import __version__
from tenantguard.application.ports import AuditSink, DecisionCache
from tenantguard.application.use_cases.catalog.bootstrap_catalog import BootstrapCatalogUseCase
from tenantguard.application.use_cases.history.analytics import GetHistoryAnalyticsUseCase
from tenantguard.application.use_cases.history.entity_history import (
    GetAdminActivityUseCase,
    GetRoleHistoryUseCase,
    GetUserHistoryUseCase,
)
from tenantguard.application.use_cases.history.record_history import RecordHistoryUseCase
from tenantguard.application.use_cases.history.rollback import RollbackUseCase
from tenantguard.application.use_cases.history.search_history import SearchHistoryUseCase
from tenantguard.application.use_cases.permission.grant_permission import GrantPermissionUseCase
from tenantguard.application.use_cases.permission.revoke_permission import (
    RevokePermissionUseCase,
)
from tenantguard.application.use_cases.role.assign_role import AssignRoleUseCase
from tenantguard.application.use_cases.role.bulk_roles import (
    BulkAssignRolesUseCase,
    BulkRemoveRolesUseCase,
)
from tenantguard.application.use_cases.role.clone_role import (
    CloneRoleUseCase,
    GetRoleLineageUseCase,
    PreviewCloneUseCase,
)
from tenantguard.application.use_cases.role.create_role import CreateRoleUseCase
from tenantguard.application.use_cases.role.delete_role import DeleteRoleUseCase
from tenantguard.application.use_cases.role.expire_assignments import ExpireAssignmentsUseCase
from tenantguard.application.use_cases.role.get_role import GetRoleUseCase
from tenantguard.application.use_cases.role.list_roles import ListRolesUseCase
from tenantguard.application.use_cases.role.remove_role import RemoveRoleUseCase
from tenantguard.application.use_cases.role.role_stats import GetRoleStatsUseCase
from tenantguard.application.use_cases.role.update_role import UpdateRoleUseCase
from tenantguard.config import Settings, get_settings
from tenantguard.infrastructure.audit.log_sink import StructlogAuditSink
from tenantguard.infrastructure.audit.postgres_sink import PostgresAuditSink
from tenantguard.infrastructure.cache.memory_cache import InMemoryDecisionCache
from tenantguard.infrastructure.permission.permission_engine import PermissionEngine
from tenantguard.infrastructure.persistence.postgres.connection import (
    create_autocommit_pool,
    create_pool,
)
from tenantguard.infrastructure.persistence.postgres.decision_cache import PostgresDecisionCache
from tenantguard.infrastructure.persistence.postgres.unit_of_work import create_uow_factory
from tenantguard.logging_config import configure_logging

logger = structlog.get_logger(__name__)


@dataclass
class Container:
    """Wired engine and use cases sharing one pool and one decision cache."""

    pool: AsyncConnectionPool
    side_pool: AsyncConnectionPool
    decision_cache: DecisionCache
    audit_sink: AuditSink
    engine: PermissionEngine
    bootstrap_catalog: BootstrapCatalogUseCase
    create_role: CreateRoleUseCase
    update_role: UpdateRoleUseCase
    delete_role: DeleteRoleUseCase
    get_role: GetRoleUseCase
    list_roles: ListRolesUseCase
    role_stats: GetRoleStatsUseCase
    preview_clone: PreviewCloneUseCase
    clone_role: CloneRoleUseCase
    role_lineage: GetRoleLineageUseCase
    assign_role: AssignRoleUseCase
    remove_role: RemoveRoleUseCase
    bulk_assign: BulkAssignRolesUseCase
    bulk_remove: BulkRemoveRolesUseCase
    expire_assignments: ExpireAssignmentsUseCase
    grant_permission: GrantPermissionUseCase
    revoke_permission: RevokePermissionUseCase
    record_history: RecordHistoryUseCase
    search_history: SearchHistoryUseCase
    user_history: GetUserHistoryUseCase
    role_history: GetRoleHistoryUseCase
    admin_activity: GetAdminActivityUseCase
    history_analytics: GetHistoryAnalyticsUseCase
    rollback: RollbackUseCase


def build_container(settings: Settings) -> Container:
    """Composition root - build engine and use cases with all dependencies."""
    pool = create_pool(
        settings.database_url,
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
    )
    side_pool = create_autocommit_pool(settings.database_url)
    uow_factory = create_uow_factory(pool)

    if settings.permission_cache_backend == "postgres":
        decision_cache: DecisionCache = PostgresDecisionCache(side_pool)
    else:
        decision_cache = InMemoryDecisionCache(max_size=settings.permission_max_cache_size)
    audit_sink: AuditSink = (
        PostgresAuditSink(side_pool)
        if settings.environment == "production"
        else StructlogAuditSink()
    )

    engine = PermissionEngine(
        unit_of_work_factory=uow_factory,
        decision_cache=decision_cache,
        cache_ttl=settings.permission_cache_ttl,
        skip_init=settings.skip_permission_init,
        force_enabled=settings.force_permission_system,
        probe_attempts=settings.catalog_probe_attempts,
    )

    assign_role = AssignRoleUseCase(
        unit_of_work_factory=uow_factory,
        permission_checker=engine,
        decision_cache=decision_cache,
        audit_sink=audit_sink,
    )
    remove_role = RemoveRoleUseCase(
        unit_of_work_factory=uow_factory,
        permission_checker=engine,
        decision_cache=decision_cache,
        audit_sink=audit_sink,
    )
    suspicious = {
        "high_frequency_threshold": settings.history_high_frequency_threshold,
        "high_frequency_window_minutes": settings.history_high_frequency_window_minutes,
        "off_hours_ratio": settings.history_off_hours_ratio,
    }

    return Container(
        pool=pool,
        side_pool=side_pool,
        decision_cache=decision_cache,
        audit_sink=audit_sink,
        engine=engine,
        bootstrap_catalog=BootstrapCatalogUseCase(uow_factory),
        create_role=CreateRoleUseCase(uow_factory, engine, audit_sink),
        update_role=UpdateRoleUseCase(uow_factory, engine, decision_cache, audit_sink),
        delete_role=DeleteRoleUseCase(uow_factory, engine, audit_sink),
        get_role=GetRoleUseCase(uow_factory),
        list_roles=ListRolesUseCase(uow_factory),
        role_stats=GetRoleStatsUseCase(uow_factory),
        preview_clone=PreviewCloneUseCase(uow_factory),
        clone_role=CloneRoleUseCase(uow_factory, engine, audit_sink),
        role_lineage=GetRoleLineageUseCase(uow_factory),
        assign_role=assign_role,
        remove_role=remove_role,
        bulk_assign=BulkAssignRolesUseCase(assign_role),
        bulk_remove=BulkRemoveRolesUseCase(remove_role),
        expire_assignments=ExpireAssignmentsUseCase(uow_factory, decision_cache),
        grant_permission=GrantPermissionUseCase(uow_factory, engine, decision_cache, audit_sink),
        revoke_permission=RevokePermissionUseCase(
            uow_factory, engine, decision_cache, audit_sink
        ),
        record_history=RecordHistoryUseCase(uow_factory),
        search_history=SearchHistoryUseCase(uow_factory),
        user_history=GetUserHistoryUseCase(uow_factory),
        role_history=GetRoleHistoryUseCase(uow_factory),
        admin_activity=GetAdminActivityUseCase(uow_factory, **suspicious),
        history_analytics=GetHistoryAnalyticsUseCase(
            uow_factory,
            lookback_days=settings.history_lookback_days,
            retention_days=settings.history_retention_days,
            **suspicious,
        ),
        rollback=RollbackUseCase(uow_factory, decision_cache, audit_sink),
    )


@asynccontextmanager
async def container(settings: Settings | None = None) -> AsyncIterator[Container]:
    """Open pools, initialize the engine, and close pools on exit."""
    settings = settings or get_settings()
    built = build_container(settings)
    await built.pool.open()
    await built.side_pool.open()
    try:
        await built.engine.initialize()
        yield built
    finally:
        await built.side_pool.close()
        await built.pool.close()


async def _bootstrap(c: Container) -> int:
    result = await c.bootstrap_catalog.execute()
    print(f"permissions={result.permissions} roles_created={result.roles_created}")
    return 0


async def _purge_cache(c: Container) -> int:
    removed = await c.engine.purge_expired_cache()
    print(f"purged={removed}")
    return 0


async def _expire_assignments(c: Container) -> int:
    expired = await c.expire_assignments.execute()
    print(f"expired={len(expired)}")
    return 0


_COMMANDS = {
    "bootstrap": _bootstrap,
    "purge-cache": _purge_cache,
    "expire-assignments": _expire_assignments,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tenantguard", description=__doc__)
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("version", help="Print version")
    sub.add_parser("bootstrap", help="Seed system permissions and roles")
    sub.add_parser("purge-cache", help="Delete expired cached decisions")
    sub.add_parser("expire-assignments", help="Deactivate expired role assignments")
    return parser


async def _run(command: str) -> int:
    async with container() as c:
        return await _COMMANDS[command](c)


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)
    if args.command == "version":
        print(f"tenantguard v{__version__}")
        return 0

    settings = get_settings()
    configure_logging(settings.log_level, json=settings.log_json)
    logger.info("command_started", command=args.command, environment=settings.environment)
    return asyncio.run(_run(args.command))


if __name__ == "__main__":
    sys.exit(main())
