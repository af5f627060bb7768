"""
qm_services -- Package init and public API.

Responsibility:
    Stateful orchestration that composes the pure engines (qm_engines/)
    with database sessions, the clock, audit and broadcasting.  This is
    the only layer that commits (through QuartermasterOperations) or
    publishes notifications.

Architecture position:
    Services -- stateful orchestration over engines + kernel.

    Dependency direction:
        qm_services/ -> qm_engines/  (allowed)
        qm_services/ -> qm_kernel/   (allowed)
        qm_services/ -> qm_config/   (allowed)
        qm_engines/  -> qm_services/ (FORBIDDEN)
        qm_kernel/   -> qm_services/ (FORBIDDEN)

Invariants enforced:
    - Layer isolation: qm_kernel and qm_engines never import from here.
    - Services flush; only the operation facade commits or rolls back.
"""

from qm_kernel.logging_config import get_logger

logger = get_logger("services")

from qm_services.approval_layer_service import ApprovalLayerResolver
from qm_services.authorization import check_elevated, require_elevated
from qm_services.bootstrap import bootstrap, register_listeners
from qm_services.budget_ledger import BudgetLedger
from qm_services.execution_engine import ExecutionEngine, ExecutionPlan, ExecutionResult
from qm_services.notifications import (
    Broadcaster,
    InMemoryBroadcaster,
    NullBroadcaster,
    publish_best_effort,
)
from qm_services.operations import QuartermasterOperations
from qm_services.po_lifecycle import (
    CancelOutcome,
    POLifecycleManager,
    UnlockOutcome,
    UpdateOutcome,
)
from qm_services.qmhq_status_service import QMHQStatusService
from qm_services.rollups import register_rollup_listeners, unregister_rollup_listeners
from qm_services.stock_availability import StockAvailabilityService

__all__ = [
    "ApprovalLayerResolver",
    "Broadcaster",
    "BudgetLedger",
    "CancelOutcome",
    "ExecutionEngine",
    "ExecutionPlan",
    "ExecutionResult",
    "InMemoryBroadcaster",
    "NullBroadcaster",
    "POLifecycleManager",
    "QMHQStatusService",
    "QuartermasterOperations",
    "StockAvailabilityService",
    "UnlockOutcome",
    "UpdateOutcome",
    "bootstrap",
    "check_elevated",
    "publish_best_effort",
    "register_listeners",
    "register_rollup_listeners",
    "require_elevated",
    "unregister_rollup_listeners",
]
