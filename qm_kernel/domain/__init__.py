"""
Pure domain layer.

Enums, value objects, the injectable clock, the actor, and the operation
result envelope. Nothing here touches the ORM, the database, or I/O.
"""

from qm_kernel.domain.actor import Actor
from qm_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from qm_kernel.domain.results import OperationResult
from qm_kernel.domain.values import (
    LOCKED_PO_STATUSES,
    ApprovalDecision,
    ApprovalLayer,
    AuditAction,
    AutoStatus,
    FinancialTransactionType,
    MovementType,
    POApprovalStatus,
    POStatus,
    RouteType,
    StockOutLineStatus,
    StockOutReason,
    StockOutRequestStatus,
    StockShortfall,
    TransactionStatus,
)

__all__ = [
    "Actor",
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "OperationResult",
    "LOCKED_PO_STATUSES",
    "ApprovalDecision",
    "ApprovalLayer",
    "AuditAction",
    "AutoStatus",
    "FinancialTransactionType",
    "MovementType",
    "POApprovalStatus",
    "POStatus",
    "RouteType",
    "StockOutLineStatus",
    "StockOutReason",
    "StockOutRequestStatus",
    "StockShortfall",
    "TransactionStatus",
]
