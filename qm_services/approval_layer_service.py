"""
ApprovalLayerResolver -- layered approval totals for reporting.

Responsibility:
    Loads a stock-out request's line items and approvals and hands them to
    ``qm_engines.approval_layers``.  Also builds the QMHQ-level
    fulfillment metrics (requested / approved / rejected / executed).

Architecture position:
    Services layer.  Read-only; performs no mutation.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from qm_engines.approval_layers import (
    ApprovalBreakdown,
    FulfillmentMetrics,
    LayerTotals,
    fulfillment_metrics,
    resolve_layer_totals,
)
from qm_kernel.exceptions import StockOutRequestNotFoundError
from qm_kernel.selectors.inventory_selector import InventorySelector
from qm_kernel.selectors.stock_out_selector import StockOutSelector
from qm_kernel.services.base import BaseService


class ApprovalLayerResolver(BaseService):
    def __init__(self, session: Session):
        super().__init__(session)
        self._stock_out = StockOutSelector(session)
        self._inventory = InventorySelector(session)

    def for_request(self, request_id: UUID) -> ApprovalBreakdown:
        """
        Per-line and request-wide approval totals.

        Raises:
            StockOutRequestNotFoundError: If the request does not exist.
        """
        if not self._stock_out.request_exists(request_id):
            raise StockOutRequestNotFoundError(str(request_id))

        lines = self._stock_out.line_items(request_id)
        approvals = self._stock_out.approvals_for_line_items(
            [line.line_item_id for line in lines]
        )
        return resolve_layer_totals(lines, approvals)

    def fulfillment_metrics(self, qmhq_id: UUID) -> FulfillmentMetrics | None:
        """
        Fulfillment figures for a QMHQ line, or None when it has no
        stock-out line items.
        """
        lines = self._stock_out.line_items_for_qmhq(qmhq_id)
        if not lines:
            return None

        approvals = self._stock_out.approvals_for_line_items(
            [line.line_item_id for line in lines]
        )
        totals: LayerTotals = resolve_layer_totals(lines, approvals).totals
        executed = self._inventory.executed_quantity_for_qmhq(qmhq_id)
        return fulfillment_metrics(totals, executed)
