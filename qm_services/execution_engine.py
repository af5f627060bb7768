"""
ExecutionEngine -- atomic stock-out execution.

Responsibility:
    Completes ALL pending inventory_out transactions of one stock-out
    request, or none of them.

Architecture position:
    Services layer.  Composes StockOutSelector and InventorySelector
    (reads), StockAvailabilityService (validation), the pure
    ``qm_engines.stock_validation`` engine (grouping, shortfalls) and
    AuditTrail (one entry per completed row).

Algorithm:
    plan():
        1. request -> active line items -> approvals with decision=approved
           -> pending, active inventory_out rows referencing them
           (SELECT ... FOR UPDATE on PostgreSQL).
        2. Nothing pending -> NothingToExecuteError.
        3. Group by (item, warehouse); compare each group's total with
           ledger availability.
        4. Any shortfall -> StockShortfallError listing every one.
    complete():
        5. One multi-row UPDATE, gated on ``status = 'pending'``, sets
           status=completed and transaction_date for every planned row.

Invariants enforced:
    - All-or-nothing: after the caller's transaction settles, the request's
      pending count is either unchanged or zero.
    - Executed quantity per (item, warehouse) never exceeds the
      availability read during planning.
    - Duplicate execution: if the gated UPDATE touches fewer rows than were
      planned, another executor won the race; ExecutionConflictError is
      raised and the caller's transaction must roll back.

Failure modes:
    - StockOutRequestNotFoundError, NothingToExecuteError,
      StockShortfallError, ExecutionConflictError.  All raised before the
      caller commits, so nothing partial is ever persisted.

Audit relevance:
    Each completed row gets a status_change entry (pending -> completed)
    in the same transaction as the UPDATE.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.orm import Session
from sqlalchemy.orm.util import identity_key

from qm_engines.stock_validation import StockGroup, find_shortfalls, group_pending
from qm_kernel.domain.actor import Actor
from qm_kernel.domain.clock import Clock, SystemClock
from qm_kernel.domain.dtos import PendingTransaction
from qm_kernel.domain.values import ApprovalDecision, TransactionStatus
from qm_kernel.exceptions import (
    ExecutionConflictError,
    NothingToExecuteError,
    StockOutRequestNotFoundError,
    StockShortfallError,
)
from qm_kernel.logging_config import get_logger
from qm_kernel.models.inventory import InventoryTransaction
from qm_kernel.selectors.inventory_selector import InventorySelector
from qm_kernel.selectors.stock_out_selector import StockOutSelector
from qm_kernel.services.audit_trail import AuditTrail
from qm_kernel.services.base import BaseService
from qm_services.stock_availability import StockAvailabilityService

logger = get_logger("services.execution_engine")

INVENTORY_TRANSACTION = "InventoryTransaction"


@dataclass(frozen=True)
class ExecutionPlan:
    """Validated pending set of one request, ready to complete."""

    request_id: UUID
    request_number: str | None
    qmhq_id: UUID | None
    pending: tuple[PendingTransaction, ...]
    groups: tuple[StockGroup, ...]
    available: dict[tuple[UUID, UUID], int] = field(default_factory=dict)

    @property
    def transaction_ids(self) -> list[UUID]:
        return [tx.transaction_id for tx in self.pending]

    @property
    def approval_ids(self) -> list[UUID]:
        seen: dict[UUID, None] = {}
        for tx in self.pending:
            if tx.stock_out_approval_id is not None:
                seen.setdefault(tx.stock_out_approval_id, None)
        return list(seen)


@dataclass(frozen=True)
class ExecutionResult:
    request_id: UUID
    request_number: str | None
    qmhq_id: UUID | None
    executed_count: int
    executed_quantity: int
    transaction_ids: tuple[UUID, ...]
    approval_ids: tuple[UUID, ...]
    executed_at: datetime


class ExecutionEngine(BaseService):
    """
    Plans and completes the pending stock-out of one request.

    Contract:
        ``execute`` = ``plan`` + ``complete``.  Both flush into the caller's
        session; the caller commits or rolls back.

    Guarantees:
        - Validation failures report every shortfall at once.
        - The completion UPDATE is a single statement.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        audit: AuditTrail | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._audit = audit or AuditTrail(session, self._clock)
        self._stock_out = StockOutSelector(session)
        self._inventory = InventorySelector(session)
        self._availability = StockAvailabilityService(session)

    def execute(self, request_id: UUID, actor: Actor) -> ExecutionResult:
        return self.complete(self.plan(request_id), actor)

    def plan(self, request_id: UUID) -> ExecutionPlan:
        """
        Resolve and validate the pending set without changing anything.

        Raises:
            StockOutRequestNotFoundError: Unknown request.
            NothingToExecuteError: No pending transactions remain.
            StockShortfallError: At least one group lacks stock.
        """
        if not self._stock_out.request_exists(request_id):
            raise StockOutRequestNotFoundError(str(request_id))

        lines = self._stock_out.line_items(request_id)
        approvals = self._stock_out.approvals_for_line_items(
            [line.line_item_id for line in lines],
            decision=ApprovalDecision.APPROVED,
        )
        pending = self._inventory.pending_for_approvals(
            [a.approval_id for a in approvals],
            for_update=self.dialect_name == "postgresql",
        )

        if not pending:
            raise NothingToExecuteError(str(request_id))

        groups = group_pending(pending)
        available = self._availability.available_stock_by_pair(g.key for g in groups)

        shortfalls = find_shortfalls(groups, available)
        if shortfalls:
            shortfalls = find_shortfalls(
                groups,
                available,
                self._stock_out.item_names(s.item_id for s in shortfalls),
                self._stock_out.warehouse_names(s.warehouse_id for s in shortfalls),
            )
            logger.warning(
                "stock_shortfall_detected",
                extra={
                    "request_id": str(request_id),
                    "pending_count": len(pending),
                    "shortfall_count": len(shortfalls),
                    "shortfalls": [
                        {
                            "item_id": str(s.item_id),
                            "warehouse_id": str(s.warehouse_id),
                            "required": s.required,
                            "available": s.available,
                        }
                        for s in shortfalls
                    ],
                },
            )
            raise StockShortfallError(str(request_id), shortfalls)

        return ExecutionPlan(
            request_id=request_id,
            request_number=self._stock_out.request_number(request_id),
            qmhq_id=self._stock_out.request_qmhq_id(request_id),
            pending=tuple(pending),
            groups=tuple(groups),
            available=dict(available),
        )

    def complete(self, plan: ExecutionPlan, actor: Actor) -> ExecutionResult:
        """
        Flip every planned row from pending to completed in one statement.

        Raises:
            ExecutionConflictError: Fewer rows were still pending than
                planned.  The caller must roll back.
        """
        ids = plan.transaction_ids
        now = self._clock.now()

        result = self.session.execute(
            update(InventoryTransaction)
            .where(
                InventoryTransaction.id.in_(ids),
                InventoryTransaction.status == TransactionStatus.PENDING.value,
            )
            .values(
                status=TransactionStatus.COMPLETED.value,
                transaction_date=now,
                updated_at=now,
                updated_by_id=actor.actor_id,
            )
            .execution_options(synchronize_session=False)
        )
        affected = result.rowcount

        if affected != len(ids):
            logger.warning(
                "execution_conflict",
                extra={
                    "request_id": str(plan.request_id),
                    "expected": len(ids),
                    "affected": affected,
                },
            )
            raise ExecutionConflictError(str(plan.request_id), len(ids), affected)

        self._expire_loaded(ids)

        for tx in plan.pending:
            self._audit.record_status_change(
                INVENTORY_TRANSACTION,
                tx.transaction_id,
                TransactionStatus.PENDING,
                TransactionStatus.COMPLETED,
                actor,
                notes=f"Executed via stock-out request {plan.request_number or plan.request_id}",
                extra_new={"transaction_date": now},
            )

        executed_quantity = sum(tx.quantity for tx in plan.pending)
        logger.info(
            "stock_out_executed",
            extra={
                "request_id": str(plan.request_id),
                "executed_count": affected,
                "executed_quantity": executed_quantity,
                "group_count": len(plan.groups),
            },
        )

        return ExecutionResult(
            request_id=plan.request_id,
            request_number=plan.request_number,
            qmhq_id=plan.qmhq_id,
            executed_count=affected,
            executed_quantity=executed_quantity,
            transaction_ids=tuple(ids),
            approval_ids=tuple(plan.approval_ids),
            executed_at=now,
        )

    def _expire_loaded(self, ids: list[UUID]) -> None:
        """Expire any loaded copies of the rows the bulk UPDATE changed."""
        for tx_id in ids:
            loaded = self.session.identity_map.get(identity_key(InventoryTransaction, tx_id))
            if loaded is not None:
                self.session.expire(loaded)
