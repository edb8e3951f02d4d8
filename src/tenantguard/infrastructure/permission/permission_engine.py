"""Permission evaluation engine - resolves decisions against roles, overrides and conditions."""

import asyncio
import base64
import json
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import psycopg
import structlog
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from tenantguard.application.dto.evaluation import (
    BulkCheck,
    BulkEvaluationResult,
    EvaluationContext,
)
from tenantguard.application.ports import CacheStats, DecisionCache
from tenantguard.domain.entities import (
    CachedDecision,
    Decision,
    Permission,
    PermissionCondition,
    Subject,
)
from tenantguard.domain.exceptions import StoreUnavailable
from tenantguard.domain.value_objects import DecisionSource, PermissionKey
from tenantguard.infrastructure.permission.conditions import (
    ConditionRegistry,
    default_registry,
    failure_reason,
)
from tenantguard.infrastructure.permission.legacy_roles import LegacyRoleMapper

logger = structlog.get_logger(__name__)

CROSS_ORGANIZATION_KEY = PermissionKey("organization", "access", "external")

_PROBE_ERRORS = (StoreUnavailable, psycopg.Error, OSError)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def build_cache_key(
    subject: Subject,
    resource: str,
    action: str,
    scope: str,
    context: EvaluationContext,
) -> str:
    """Fingerprint of (subject identity, permission key, serialized context).

    The subject's legacy role and user type are part of the fingerprint, so a
    promotion or demotion by the identity layer never hits an older entry.
    """
    payload = json.dumps(
        {
            "legacy_role": subject.legacy_role,
            "user_type": subject.user_type,
            **context.fingerprint_payload(),
        },
        sort_keys=True,
        default=str,
    )
    encoded = base64.b64encode(payload.encode()).decode()
    return f"perm:{subject.id}:{resource}:{action}:{scope}:{encoded}"


class PermissionEngine:
    """Evaluates (subject, resource, action, scope, context) into a Decision.

    Evaluation never raises: unexpected failures become deny decisions.
    """

    def __init__(
        self,
        unit_of_work_factory: type,
        decision_cache: DecisionCache,
        conditions: ConditionRegistry | None = None,
        legacy_mapper: LegacyRoleMapper | None = None,
        cache_ttl: int = 3600,
        skip_init: bool = False,
        force_enabled: bool = False,
        probe_attempts: int = 3,
        probe_wait: float = 1.0,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self._cache = decision_cache
        self._conditions = conditions or default_registry()
        self._legacy = legacy_mapper or LegacyRoleMapper()
        self._cache_ttl = cache_ttl
        self._skip_init = skip_init
        self._force_enabled = force_enabled
        self._probe_attempts = probe_attempts
        self._probe_wait = probe_wait
        self._clock = clock
        self._catalog_available = False

    @property
    def catalog_available(self) -> bool:
        return self._catalog_available

    async def initialize(self) -> bool:
        """Probe the permission catalog and switch out of legacy mode when it answers."""
        if self._skip_init:
            logger.warning("permission_init_skipped", mode="legacy")
            self._catalog_available = False
            return False
        if self._force_enabled:
            logger.info("permission_system_forced")
            self._catalog_available = True
            return True

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._probe_attempts),
                wait=wait_exponential(multiplier=self._probe_wait),
                retry=retry_if_exception_type(_PROBE_ERRORS),
                reraise=True,
            ):
                with attempt:
                    count = await self._probe()
        except (*_PROBE_ERRORS, RetryError) as e:
            logger.error(
                "permission_catalog_unavailable",
                attempts=self._probe_attempts,
                error=str(e),
            )
            self._catalog_available = False
            return False

        logger.info("permission_catalog_available", permissions=count)
        self._catalog_available = True
        return True

    async def _probe(self) -> int:
        async with self._uow_factory() as uow:
            return await uow.permissions.count()

    def status(self) -> dict:
        """Diagnostic view of the engine mode."""
        return {
            "catalog_available": self._catalog_available,
            "legacy_mode": not self._catalog_available,
            "skip_init": self._skip_init,
            "force_enabled": self._force_enabled,
            "cache_ttl": self._cache_ttl,
            "condition_types": self._conditions.supported_types(),
        }

    async def check(
        self,
        subject: Subject,
        resource: str,
        action: str,
        scope: str,
        context: EvaluationContext | None = None,
    ) -> bool:
        decision = await self.evaluate(subject, resource, action, scope, context)
        return decision.allowed

    async def evaluate(
        self,
        subject: Subject,
        resource: str,
        action: str,
        scope: str,
        context: EvaluationContext | None = None,
    ) -> Decision:
        context = context or EvaluationContext()
        if not self._catalog_available:
            return Decision(
                allowed=False,
                source=DecisionSource.LEGACY,
                reason="Permission catalog not available",
            )

        key = PermissionKey(resource, action, scope)
        cache_key = build_cache_key(subject, resource, action, scope, context)
        try:
            if subject.is_superuser:
                decision = Decision(
                    allowed=True,
                    source=DecisionSource.ROLE,
                    reason="Platform administrator",
                )
                await self._remember(cache_key, subject.id, decision)
                return decision

            if self._is_cross_organization(subject, context):
                denial = await self._check_cross_organization(subject, context)
                if denial is not None:
                    return denial

            cached = await self._recall(cache_key)
            if cached is not None:
                remaining = (cached.expires_at - self._clock()).total_seconds()
                return Decision(
                    allowed=cached.allowed,
                    source=DecisionSource.CACHED,
                    reason=cached.reason,
                    ttl=max(int(remaining), 0),
                    conditions=cached.conditions,
                )

            decision, valid_until = await self._resolve(subject, key, context)
            await self._remember(cache_key, subject.id, decision, valid_until)
            logger.debug(
                "permission_evaluated",
                subject_id=subject.id,
                permission=str(key),
                allowed=decision.allowed,
                source=str(decision.source),
            )
            return decision
        except Exception as e:
            logger.error(
                "permission_evaluation_failed",
                subject_id=subject.id,
                permission=str(key),
                exc_info=True,
            )
            return Decision(
                allowed=False,
                source=DecisionSource.DEFAULT,
                reason=f"Evaluation error: {e}",
            )

    @staticmethod
    def _is_cross_organization(subject: Subject, context: EvaluationContext) -> bool:
        return (
            subject.user_type.is_external
            and context.organization_id is not None
            and context.organization_id != subject.organization_id
        )

    async def _check_cross_organization(
        self, subject: Subject, context: EvaluationContext
    ) -> Decision | None:
        """Deny unless the subject holds an external-organization grant."""
        now = self._clock()
        async with self._uow_factory() as uow:
            permission = await uow.permissions.get_by_key(
                CROSS_ORGANIZATION_KEY.resource,
                CROSS_ORGANIZATION_KEY.action,
                CROSS_ORGANIZATION_KEY.scope,
            )
            if permission is not None:
                override = await uow.user_permissions.get(subject.id, permission.id)
                if override is not None and override.is_effective(now):
                    if override.granted:
                        return None
                else:
                    grants = await uow.assignments.list_role_grants(subject.id, permission.id)
                    if any(a.is_effective(now) for a, _ in grants):
                        return None

        logger.info(
            "cross_organization_denied",
            subject_id=subject.id,
            home_organization=subject.organization_id,
            requested_organization=context.organization_id,
        )
        return Decision(
            allowed=False,
            source=DecisionSource.VALIDATION,
            reason="Cross-organization access requires organization.access.external",
        )

    async def _resolve(
        self, subject: Subject, key: PermissionKey, context: EvaluationContext
    ) -> tuple[Decision, datetime | None]:
        """Decision plus the expiry of the assignment or override it rests on."""
        now = self._clock()
        async with self._uow_factory() as uow:
            permission = await uow.permissions.get_by_key(key.resource, key.action, key.scope)
            if permission is None:
                return (
                    Decision(
                        allowed=False,
                        source=DecisionSource.DEFAULT,
                        reason="Permission not found",
                    ),
                    None,
                )

            failed: PermissionCondition | None = None

            pattern = self._legacy.matching_pattern(subject.legacy_role, key)
            if pattern is not None:
                failed = self._first_failure(permission.conditions, context, subject)
                if failed is None:
                    return (
                        Decision(
                            allowed=True,
                            source=DecisionSource.ROLE,
                            reason=f"Granted by legacy role {subject.legacy_role} ({pattern})",
                        ),
                        None,
                    )

            override = await uow.user_permissions.get(subject.id, permission.id)
            if override is not None and not override.is_effective(now):
                override = None
            if override is not None and not override.granted:
                return (
                    Decision(
                        allowed=False,
                        source=DecisionSource.USER,
                        reason="Explicitly denied by user permission",
                    ),
                    override.expires_at,
                )

            for assignment, role_permission in await uow.assignments.list_role_grants(
                subject.id, permission.id
            ):
                if not assignment.is_effective(now):
                    continue
                conditions = (
                    assignment.conditions
                    or role_permission.conditions
                    or permission.conditions
                )
                role_failure = self._first_failure(conditions, context, subject)
                if role_failure is None:
                    return (
                        Decision(
                            allowed=True,
                            source=DecisionSource.ROLE,
                            reason=f"Granted by role {assignment.role_id}",
                        ),
                        assignment.expires_at,
                    )
                failed = role_failure

            if override is not None:
                user_failure = self._first_failure(
                    override.conditions or permission.conditions, context, subject
                )
                if user_failure is None:
                    return (
                        Decision(
                            allowed=True,
                            source=DecisionSource.USER,
                            reason="Granted by user permission",
                        ),
                        override.expires_at,
                    )
                return (
                    Decision(
                        allowed=False,
                        source=DecisionSource.USER,
                        reason=failure_reason(user_failure),
                        conditions=user_failure.value,
                    ),
                    override.expires_at,
                )

        if failed is not None:
            return (
                Decision(
                    allowed=False,
                    source=DecisionSource.DEFAULT,
                    reason=failure_reason(failed),
                    conditions=failed.value,
                ),
                None,
            )
        return (
            Decision(
                allowed=False,
                source=DecisionSource.DEFAULT,
                reason="No matching permission found",
            ),
            None,
        )

    def _first_failure(
        self,
        conditions: list[PermissionCondition] | None,
        context: EvaluationContext,
        subject: Subject,
    ) -> PermissionCondition | None:
        return self._conditions.first_failure(conditions or [], context, subject.id)

    async def _recall(self, cache_key: str) -> CachedDecision | None:
        try:
            cached = await self._cache.get(cache_key)
        except Exception:
            logger.error("decision_cache_read_failed", cache_key=cache_key, exc_info=True)
            return None
        if cached is None or not cached.is_live(self._clock()):
            return None
        return cached

    async def _remember(
        self,
        cache_key: str,
        subject_id: str,
        decision: Decision,
        valid_until: datetime | None = None,
    ) -> None:
        now = self._clock()
        expires_at = now + timedelta(seconds=self._cache_ttl)
        # An entry never outlives the grant or deny it was resolved from.
        if valid_until is not None:
            if valid_until <= now:
                return
            expires_at = min(expires_at, valid_until)
        entry = CachedDecision(
            cache_key=cache_key,
            subject_id=subject_id,
            allowed=decision.allowed,
            expires_at=expires_at,
            reason=decision.reason,
            conditions=decision.conditions,
        )
        try:
            await self._cache.set(entry)
        except Exception:
            logger.error("decision_cache_write_failed", cache_key=cache_key, exc_info=True)

    async def evaluate_bulk(
        self,
        subject: Subject,
        checks: list[BulkCheck],
        context: EvaluationContext | None = None,
    ) -> BulkEvaluationResult:
        """Evaluate checks concurrently; one failing item never aborts the rest.

        Results are keyed by permission key, so a key requested twice is
        evaluated once, using its last occurrence.
        """
        base = context or EvaluationContext()
        checks = list({check.key: check for check in checks}.values())

        async def _one(check: BulkCheck) -> Decision:
            return await self.evaluate(
                subject,
                check.resource,
                check.action,
                check.scope,
                base.merged(check.context),
            )

        outcomes = await asyncio.gather(
            *(_one(c) for c in checks), return_exceptions=True
        )

        result = BulkEvaluationResult(results={})
        for check, outcome in zip(checks, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                result.results[check.key] = Decision(
                    allowed=False,
                    source=DecisionSource.DEFAULT,
                    reason=f"Evaluation error: {outcome}",
                )
                result.errors.append(f"{check.key}: {outcome}")
                continue
            result.results[check.key] = outcome
            if outcome.source is DecisionSource.CACHED:
                result.cached += 1
            else:
                result.evaluated += 1
            if outcome.reason and outcome.reason.startswith("Evaluation error"):
                result.errors.append(f"{check.key}: {outcome.reason}")
        return result

    async def get_effective_permissions(
        self, subject: Subject, context: EvaluationContext | None = None
    ) -> list[Permission]:
        """Permissions the subject currently holds, explicit denies removed."""
        if not self._catalog_available:
            return []
        context = context or EvaluationContext()
        now = self._clock()
        async with self._uow_factory() as uow:
            catalog = await uow.permissions.list_all()
            if subject.is_superuser:
                return sorted(catalog, key=lambda p: str(p.key))

            granted = {
                p.id for p in catalog if self._legacy.grants(subject.legacy_role, p.key)
            }
            for assignment in await uow.assignments.list_for_user(subject.id):
                if not assignment.is_effective(now):
                    continue
                role = await uow.roles.get_by_id(assignment.role_id)
                if role is None or not role.is_active:
                    continue
                granted |= role.granted_permission_ids()

            denied = set()
            for override in await uow.user_permissions.list_for_user(subject.id):
                if not override.is_effective(now):
                    continue
                if override.granted:
                    granted.add(override.permission_id)
                else:
                    denied.add(override.permission_id)

        effective = [
            p
            for p in catalog
            if p.id in granted
            and p.id not in denied
            and self._first_failure(p.conditions, context, subject) is None
        ]
        return sorted(effective, key=lambda p: str(p.key))

    async def clear_cache(self, subject_id: str) -> int:
        removed = await self._cache.invalidate_subject(subject_id)
        logger.info("decision_cache_cleared", subject_id=subject_id, removed=removed)
        return removed

    async def purge_expired_cache(self) -> int:
        removed = await self._cache.purge_expired()
        logger.info("decision_cache_purged", removed=removed)
        return removed

    async def cache_stats(self, subject_id: str | None = None) -> CacheStats:
        return await self._cache.stats(subject_id)
