"""
Module: qm_kernel.models.purchase_order
Responsibility: ORM persistence for purchase orders and their line items.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/values.py only.

Invariants enforced:
    - PO status is derived from its line items' (quantity, invoiced_quantity,
      received_quantity) plus the cancelled flag.  Only the lifecycle paths
      (cancel, unlock) write it directly; the line-item rollup listener
      re-derives it otherwise.
    - invoiced_quantity >= 0 and received_quantity >= 0 (CHECK).  No upper
      bound: over-receipt is a data-entry concern outside this core.

Audit relevance:
    Cancel, unlock, and header edits each produce one audit_logs entry
    against the PO.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from qm_kernel.db.base import TrackedBase, UUIDString
from qm_kernel.domain.values import POApprovalStatus, POStatus


class PurchaseOrder(TrackedBase):
    """
    Procurement commitment to a supplier, owned by one QMHQ line.

    Contract:
        ``status`` is one of POStatus.  ``total_amount_eusd`` is the amount
        released from the QMHQ commitment when the PO is cancelled.
    """

    __tablename__ = "purchase_orders"

    __table_args__ = (
        UniqueConstraint("po_number", name="uq_po_number"),
        Index("idx_po_qmhq", "qmhq_id"),
        Index("idx_po_status", "status"),
    )

    po_number: Mapped[str] = mapped_column(String(30), nullable=False)

    qmhq_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("qmhq.id"),
        nullable=False,
    )

    supplier_id: Mapped[UUID | None] = mapped_column(nullable=True)

    po_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    expected_delivery_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    status: Mapped[POStatus] = mapped_column(
        String(20),
        default=POStatus.NOT_STARTED,
        nullable=False,
    )

    approval_status: Mapped[POApprovalStatus] = mapped_column(
        String(10),
        default=POApprovalStatus.DRAFT,
        nullable=False,
    )

    currency: Mapped[str] = mapped_column(String(3), default="MMK", nullable=False)

    exchange_rate: Mapped[Decimal] = mapped_column(default=Decimal("1"), nullable=False)

    total_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)

    total_amount_eusd: Mapped[Decimal] = mapped_column(
        default=Decimal("0"), nullable=False
    )

    contact_person_name: Mapped[str | None] = mapped_column(String(200), nullable=True)

    sign_person_name: Mapped[str | None] = mapped_column(String(200), nullable=True)

    authorized_signer_name: Mapped[str | None] = mapped_column(String(200), nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    cancelled_at: Mapped[datetime | None] = mapped_column(nullable=True)

    cancelled_by: Mapped[UUID | None] = mapped_column(nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    qmhq: Mapped["QMHQ"] = relationship(back_populates="purchase_orders")  # noqa: F821

    lines: Mapped[list["POLineItem"]] = relationship(
        back_populates="purchase_order",
        order_by="POLineItem.created_at",
    )

    @property
    def is_cancelled(self) -> bool:
        return self.status == POStatus.CANCELLED

    def __repr__(self) -> str:
        return f"<PurchaseOrder {self.po_number} ({self.status})>"


class POLineItem(TrackedBase):
    """
    Ordered quantity of one item on a PO, with invoicing/receiving progress.

    Contract:
        invoiced_quantity and received_quantity are running totals posted by
        the invoice and receipt flows.  They never decrease in normal
        operation; a correction after unlock may lower them.
    """

    __tablename__ = "po_line_items"

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_po_line_quantity"),
        CheckConstraint("invoiced_quantity >= 0", name="ck_po_line_invoiced"),
        CheckConstraint("received_quantity >= 0", name="ck_po_line_received"),
        Index("idx_po_line_po", "po_id"),
    )

    po_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("purchase_orders.id"),
        nullable=False,
    )

    item_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("items.id"),
        nullable=True,
    )

    item_description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    quantity: Mapped[int] = mapped_column(nullable=False)

    unit_price: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)

    invoiced_quantity: Mapped[int] = mapped_column(default=0, nullable=False)

    received_quantity: Mapped[int] = mapped_column(default=0, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    purchase_order: Mapped[PurchaseOrder] = relationship(back_populates="lines")

    def __repr__(self) -> str:
        return (
            f"<POLineItem {self.id} qty={self.quantity} "
            f"inv={self.invoiced_quantity} rec={self.received_quantity}>"
        )
