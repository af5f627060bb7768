"""
DTOs -- Frozen read models passed from selectors to engines and services.

Selectors build these from ORM rows; pure engines consume them.  Keeping
the engines on plain frozen dataclasses means they never touch a Session.

Everything here is flat and id-keyed: parent/child structure is expressed
by ids (line_item_id, parent_approval_id) rather than nested objects.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from qm_kernel.domain.values import (
    ApprovalDecision,
    ApprovalLayer,
    StockOutLineStatus,
)


@dataclass(frozen=True, slots=True)
class POQuantityTotals:
    """Sums over a PO's active line items."""

    line_count: int
    total_quantity: int
    invoiced_quantity: int
    received_quantity: int

    @classmethod
    def empty(cls) -> POQuantityTotals:
        return cls(0, 0, 0, 0)


@dataclass(frozen=True, slots=True)
class LineItemRecord:
    line_item_id: UUID
    request_id: UUID
    item_id: UUID
    requested_quantity: int
    status: StockOutLineStatus


@dataclass(frozen=True, slots=True)
class ApprovalRecord:
    approval_id: UUID
    line_item_id: UUID
    layer: ApprovalLayer
    decision: ApprovalDecision
    approved_quantity: int
    warehouse_id: UUID | None = None
    parent_approval_id: UUID | None = None


@dataclass(frozen=True, slots=True)
class PendingTransaction:
    """A pending inventory_out row reachable from an approved approval."""

    transaction_id: UUID
    item_id: UUID
    warehouse_id: UUID
    quantity: int
    stock_out_approval_id: UUID | None
    qmhq_id: UUID | None = None


@dataclass(frozen=True, slots=True)
class QMHQMoney:
    """The money figures of one QMHQ line as stored after rollup."""

    qmhq_id: UUID
    request_id: str
    amount_eusd: Decimal
    total_money_in_eusd: Decimal
    total_po_committed_eusd: Decimal
