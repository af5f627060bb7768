"""
Module: qm_kernel.selectors.stock_out_selector
Responsibility: Read access to stock-out requests, their line items, and
    layered approvals, returned as flat id-keyed DTOs.
Architecture position: Kernel > Selectors.
"""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import select

from qm_kernel.domain.dtos import ApprovalRecord, LineItemRecord
from qm_kernel.domain.values import (
    ApprovalDecision,
    ApprovalLayer,
    StockOutLineStatus,
)
from qm_kernel.models.catalog import Item, Warehouse
from qm_kernel.models.stock_out import (
    StockOutApproval,
    StockOutLineItem,
    StockOutRequest,
)
from qm_kernel.selectors.base import BaseSelector


def _line_record(row: StockOutLineItem) -> LineItemRecord:
    return LineItemRecord(
        line_item_id=row.id,
        request_id=row.request_id,
        item_id=row.item_id,
        requested_quantity=row.requested_quantity,
        status=StockOutLineStatus(row.status),
    )


def _approval_record(row: StockOutApproval) -> ApprovalRecord:
    return ApprovalRecord(
        approval_id=row.id,
        line_item_id=row.line_item_id,
        layer=ApprovalLayer(row.layer),
        decision=ApprovalDecision(row.decision),
        approved_quantity=row.approved_quantity,
        warehouse_id=row.warehouse_id,
        parent_approval_id=row.parent_approval_id,
    )


class StockOutSelector(BaseSelector):
    """Read-only queries over the stock-out approval pipeline."""

    def request_exists(self, request_id: UUID) -> bool:
        return (
            self.session.execute(
                select(StockOutRequest.id).where(StockOutRequest.id == request_id)
            ).first()
            is not None
        )

    def request_number(self, request_id: UUID) -> str | None:
        return self.session.execute(
            select(StockOutRequest.request_number).where(StockOutRequest.id == request_id)
        ).scalar_one_or_none()

    def request_qmhq_id(self, request_id: UUID) -> UUID | None:
        return self.session.execute(
            select(StockOutRequest.qmhq_id).where(StockOutRequest.id == request_id)
        ).scalar_one_or_none()

    def line_items(self, request_id: UUID) -> list[LineItemRecord]:
        """Active line items of one request."""
        rows = self.session.execute(
            select(StockOutLineItem)
            .where(
                StockOutLineItem.request_id == request_id,
                StockOutLineItem.is_active.is_(True),
            )
            .order_by(StockOutLineItem.created_at, StockOutLineItem.id)
        ).scalars().all()
        return [_line_record(row) for row in rows]

    def line_items_for_qmhq(self, qmhq_id: UUID) -> list[LineItemRecord]:
        """Active line items across every active request tied to a QMHQ line."""
        rows = self.session.execute(
            select(StockOutLineItem)
            .join(StockOutRequest, StockOutRequest.id == StockOutLineItem.request_id)
            .where(
                StockOutRequest.qmhq_id == qmhq_id,
                StockOutRequest.is_active.is_(True),
                StockOutLineItem.is_active.is_(True),
            )
            .order_by(StockOutLineItem.created_at, StockOutLineItem.id)
        ).scalars().all()
        return [_line_record(row) for row in rows]

    def approvals_for_line_items(
        self,
        line_item_ids: Iterable[UUID],
        *,
        decision: ApprovalDecision | None = None,
    ) -> list[ApprovalRecord]:
        """Approvals of the given line items, optionally filtered by decision."""
        ids = list(line_item_ids)
        if not ids:
            return []

        stmt = select(StockOutApproval).where(StockOutApproval.line_item_id.in_(ids))
        if decision is not None:
            stmt = stmt.where(StockOutApproval.decision == decision.value)
        rows = self.session.execute(
            stmt.order_by(StockOutApproval.created_at, StockOutApproval.id)
        ).scalars().all()
        return [_approval_record(row) for row in rows]

    def item_names(self, item_ids: Iterable[UUID]) -> dict[UUID, str]:
        ids = list(item_ids)
        if not ids:
            return {}
        rows = self.session.execute(select(Item.id, Item.name).where(Item.id.in_(ids))).all()
        return {item_id: name for item_id, name in rows}

    def warehouse_names(self, warehouse_ids: Iterable[UUID]) -> dict[UUID, str]:
        ids = list(warehouse_ids)
        if not ids:
            return {}
        rows = self.session.execute(
            select(Warehouse.id, Warehouse.name).where(Warehouse.id.in_(ids))
        ).all()
        return {warehouse_id: name for warehouse_id, name in rows}
