"""
Module: qm_kernel.models.inventory
Responsibility: ORM persistence for the inventory transaction ledger.
Architecture position: Kernel > Models.

Invariants enforced:
    - Stock on hand is never stored.  It is always the sum of completed,
      active inventory_in minus inventory_out rows for an (item, warehouse).
    - pending -> completed is one-way.  A completed row is immutable
      (db/immutability.py); corrections are offsetting inventory_in rows.
    - quantity > 0 (CHECK).  Direction comes from movement_type.

Failure modes:
    - ImmutabilityViolationError on ORM UPDATE/DELETE of a completed row.

Audit relevance:
    The executor writes one status_change audit entry per row it completes.
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
)
from sqlalchemy.orm import Mapped, mapped_column

from qm_kernel.db.base import TrackedBase, UUIDString
from qm_kernel.domain.values import MovementType, StockOutReason, TransactionStatus


class InventoryTransaction(TrackedBase):
    """
    One stock movement into or out of a warehouse.

    Contract:
        Stock-out rows are created pending when an admin-layer approval
        assigns a warehouse (stock_out_approval_id set), and only the
        ExecutionEngine moves them to completed.
    """

    __tablename__ = "inventory_transactions"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_inv_tx_quantity"),
        Index("idx_inv_tx_item_warehouse", "item_id", "warehouse_id"),
        Index("idx_inv_tx_approval", "stock_out_approval_id"),
        Index("idx_inv_tx_status", "status"),
        Index("idx_inv_tx_qmhq", "qmhq_id"),
    )

    movement_type: Mapped[MovementType] = mapped_column(String(15), nullable=False)

    status: Mapped[TransactionStatus] = mapped_column(
        String(10),
        default=TransactionStatus.PENDING,
        nullable=False,
    )

    item_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("items.id"),
        nullable=False,
    )

    warehouse_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("warehouses.id"),
        nullable=False,
    )

    quantity: Mapped[int] = mapped_column(nullable=False)

    stock_out_approval_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("stock_out_approvals.id"),
        nullable=True,
    )

    qmhq_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("qmhq.id"),
        nullable=True,
    )

    reason: Mapped[StockOutReason | None] = mapped_column(String(20), nullable=True)

    transaction_date: Mapped[datetime | None] = mapped_column(nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    @property
    def is_completed(self) -> bool:
        return self.status == TransactionStatus.COMPLETED

    def __repr__(self) -> str:
        return (
            f"<InventoryTransaction {self.movement_type} {self.quantity} "
            f"({self.status})>"
        )
