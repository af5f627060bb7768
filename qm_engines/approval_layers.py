"""
qm_engines.approval_layers -- Layered approval aggregation.

Responsibility:
    Sum L1 (quartermaster) approvals, L2 (admin) warehouse assignments and
    rejections over a stock-out request's line items, both per line and
    across the whole request.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Consumes the flat
    LineItemRecord / ApprovalRecord DTOs produced by StockOutSelector.

Invariants enforced:
    - Each approval row contributes to exactly one bucket:
        quartermaster + approved -> l1_approved
        admin + approved         -> l2_assigned
        rejected (either layer)  -> rejected
    - Request totals are the sum of per-line totals (additive).
    - effective_target = requested - rejected.

Failure modes:
    - An approval whose line_item_id is not among the given line items is
      ignored rather than silently attributed elsewhere.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from uuid import UUID

from qm_engines.tracer import traced_engine
from qm_kernel.domain.dtos import ApprovalRecord, LineItemRecord
from qm_kernel.domain.values import ApprovalDecision, ApprovalLayer


@dataclass(frozen=True, slots=True)
class LayerTotals:
    """Approval sums for a whole stock-out request."""

    requested: int = 0
    l1_approved: int = 0
    l2_assigned: int = 0
    rejected: int = 0

    @property
    def effective_target(self) -> int:
        return self.requested - self.rejected

    def __add__(self, other: LayerTotals) -> LayerTotals:
        return LayerTotals(
            requested=self.requested + other.requested,
            l1_approved=self.l1_approved + other.l1_approved,
            l2_assigned=self.l2_assigned + other.l2_assigned,
            rejected=self.rejected + other.rejected,
        )


@dataclass(frozen=True, slots=True)
class LineItemLayerTotals:
    """Approval sums for one line item."""

    line_item_id: UUID
    item_id: UUID
    requested: int
    l1_approved: int
    l2_assigned: int
    rejected: int

    @property
    def remaining_quantity(self) -> int:
        """Quantity still awaiting an L1 decision."""
        return self.requested - self.l1_approved - self.rejected

    @property
    def unassigned_l1(self) -> int:
        """L1-approved quantity not yet given a warehouse by L2."""
        return self.l1_approved - self.l2_assigned

    def as_layer_totals(self) -> LayerTotals:
        return LayerTotals(
            requested=self.requested,
            l1_approved=self.l1_approved,
            l2_assigned=self.l2_assigned,
            rejected=self.rejected,
        )


@dataclass(frozen=True, slots=True)
class ApprovalBreakdown:
    """Request totals plus the per-line detail they were summed from."""

    totals: LayerTotals
    lines: tuple[LineItemLayerTotals, ...]

    def for_line(self, line_item_id: UUID) -> LineItemLayerTotals | None:
        for line in self.lines:
            if line.line_item_id == line_item_id:
                return line
        return None


def _bucket(approval: ApprovalRecord) -> str:
    if ApprovalDecision(approval.decision) == ApprovalDecision.REJECTED:
        return "rejected"
    if ApprovalLayer(approval.layer) == ApprovalLayer.ADMIN:
        return "l2_assigned"
    return "l1_approved"


@traced_engine(
    "approval_layers", "1.0", fingerprint_fields=("line_items", "approvals")
)
def resolve_layer_totals(
    line_items: Iterable[LineItemRecord],
    approvals: Iterable[ApprovalRecord],
) -> ApprovalBreakdown:
    """
    Aggregate approvals per line item and across the request.

    Args:
        line_items: Line items of one request.
        approvals: Every approval row of those line items, any decision.

    Returns:
        ApprovalBreakdown with one LineItemLayerTotals per line item, in the
        given order, and their sum.
    """
    lines = list(line_items)
    sums: dict[UUID, dict[str, int]] = {
        line.line_item_id: {"l1_approved": 0, "l2_assigned": 0, "rejected": 0}
        for line in lines
    }

    for approval in approvals:
        bucket = sums.get(approval.line_item_id)
        if bucket is None:
            continue
        bucket[_bucket(approval)] += approval.approved_quantity

    per_line = tuple(
        LineItemLayerTotals(
            line_item_id=line.line_item_id,
            item_id=line.item_id,
            requested=line.requested_quantity,
            **sums[line.line_item_id],
        )
        for line in lines
    )

    totals = LayerTotals()
    for line in per_line:
        totals = totals + line.as_layer_totals()

    return ApprovalBreakdown(totals=totals, lines=per_line)


@dataclass(frozen=True, slots=True)
class FulfillmentMetrics:
    """Requested / approved / rejected / executed for one QMHQ line."""

    requested: int
    approved: int
    rejected: int
    executed: int

    @property
    def effective_target(self) -> int:
        return self.requested - self.rejected

    @property
    def is_fulfilled(self) -> bool:
        return self.effective_target > 0 and self.executed >= self.effective_target


def fulfillment_metrics(totals: LayerTotals, executed: int) -> FulfillmentMetrics:
    """
    Fulfillment figures from request totals and the executed quantity.

    ``approved`` is the L1-approved quantity.  L2 rows re-assign quantity
    that L1 already approved, so counting them again would double it.
    """
    return FulfillmentMetrics(
        requested=totals.requested,
        approved=totals.l1_approved,
        rejected=totals.rejected,
        executed=executed,
    )
