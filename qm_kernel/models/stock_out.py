"""
Module: qm_kernel.models.stock_out
Responsibility: ORM persistence for the stock-out approval pipeline:
    requests, their line items, and layered approvals.
Architecture position: Kernel > Models.

Invariants enforced:
    - An approval belongs to exactly one line item and one layer
      (quartermaster = L1, admin = L2) with one decision.
    - approved_quantity > 0 (CHECK).  For a rejection it is the rejected
      quantity.
    - An L2 (admin) approval links back to the L1 approval it allocates from
      through parent_approval_id.

Audit relevance:
    Line-item and request statuses are resolved upstream of this core; the
    executor only reads approvals and completes the inventory transactions
    they created.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from qm_kernel.db.base import TrackedBase, UUIDString
from qm_kernel.domain.values import (
    ApprovalDecision,
    ApprovalLayer,
    StockOutLineStatus,
    StockOutReason,
    StockOutRequestStatus,
)


class StockOutRequest(TrackedBase):
    """Groups the line items of one stock-out request (SOR)."""

    __tablename__ = "stock_out_requests"

    __table_args__ = (
        UniqueConstraint("request_number", name="uq_sor_request_number"),
        Index("idx_sor_qmhq", "qmhq_id"),
    )

    request_number: Mapped[str] = mapped_column(String(30), nullable=False)

    qmhq_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("qmhq.id"),
        nullable=True,
    )

    requester_id: Mapped[UUID] = mapped_column(nullable=False)

    reason: Mapped[StockOutReason] = mapped_column(
        String(20), default=StockOutReason.REQUEST, nullable=False
    )

    status: Mapped[StockOutRequestStatus] = mapped_column(
        String(20), default=StockOutRequestStatus.PENDING, nullable=False
    )

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    line_items: Mapped[list["StockOutLineItem"]] = relationship(
        back_populates="request",
        order_by="StockOutLineItem.created_at",
    )

    def __repr__(self) -> str:
        return f"<StockOutRequest {self.request_number} ({self.status})>"


class StockOutLineItem(TrackedBase):
    """One requested item on a stock-out request."""

    __tablename__ = "stock_out_line_items"

    __table_args__ = (
        CheckConstraint("requested_quantity > 0", name="ck_sor_line_requested"),
        Index("idx_sor_line_request", "request_id"),
    )

    request_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("stock_out_requests.id"),
        nullable=False,
    )

    item_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("items.id"),
        nullable=False,
    )

    requested_quantity: Mapped[int] = mapped_column(nullable=False)

    status: Mapped[StockOutLineStatus] = mapped_column(
        String(20), default=StockOutLineStatus.PENDING, nullable=False
    )

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    request: Mapped[StockOutRequest] = relationship(back_populates="line_items")

    approvals: Mapped[list["StockOutApproval"]] = relationship(
        back_populates="line_item",
        order_by="StockOutApproval.created_at",
    )


class StockOutApproval(TrackedBase):
    """A layered approval or rejection decision on a line item."""

    __tablename__ = "stock_out_approvals"

    __table_args__ = (
        CheckConstraint("approved_quantity > 0", name="ck_sor_approval_quantity"),
        Index("idx_sor_approval_line", "line_item_id"),
        Index("idx_sor_approval_parent", "parent_approval_id"),
    )

    line_item_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("stock_out_line_items.id"),
        nullable=False,
    )

    layer: Mapped[ApprovalLayer] = mapped_column(String(15), nullable=False)

    decision: Mapped[ApprovalDecision] = mapped_column(String(10), nullable=False)

    approved_quantity: Mapped[int] = mapped_column(nullable=False)

    # Set on admin-layer approvals: where the stock will be issued from
    warehouse_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("warehouses.id"),
        nullable=True,
    )

    parent_approval_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("stock_out_approvals.id"),
        nullable=True,
    )

    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    decided_by: Mapped[UUID] = mapped_column(nullable=False)

    decided_at: Mapped[datetime | None] = mapped_column(nullable=True)

    line_item: Mapped[StockOutLineItem] = relationship(back_populates="approvals")
