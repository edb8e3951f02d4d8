"""Application ports - interfaces for external adapters."""

from tenantguard.application.ports.audit_sink import AuditSink
from tenantguard.application.ports.condition_evaluator import ConditionEvaluator
from tenantguard.application.ports.decision_cache import CacheStats, DecisionCache
from tenantguard.application.ports.permission_checker import PermissionChecker
from tenantguard.application.ports.unit_of_work import UnitOfWork, UnitOfWorkFactory

__all__ = [
    "AuditSink",
    "CacheStats",
    "ConditionEvaluator",
    "DecisionCache",
    "PermissionChecker",
    "UnitOfWork",
    "UnitOfWorkFactory",
]
