"""
Module: qm_kernel.models.financial_transaction
Responsibility: ORM persistence for money-in / money-out postings on a QMHQ.
Architecture position: Kernel > Models.

Invariants enforced:
    - Only active, non-voided money_in rows count toward the QMHQ's
      total_money_in_eusd rollup.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from qm_kernel.db.base import TrackedBase, UUIDString
from qm_kernel.domain.values import FinancialTransactionType


class FinancialTransaction(TrackedBase):
    """Money movement against a QMHQ line, normalized to EUSD."""

    __tablename__ = "financial_transactions"

    __table_args__ = (
        Index("idx_fin_tx_qmhq", "qmhq_id"),
        Index("idx_fin_tx_type", "transaction_type"),
    )

    qmhq_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("qmhq.id"),
        nullable=False,
    )

    transaction_type: Mapped[FinancialTransactionType] = mapped_column(
        String(10), nullable=False
    )

    amount: Mapped[Decimal] = mapped_column(nullable=False)

    currency: Mapped[str] = mapped_column(String(3), default="MMK", nullable=False)

    exchange_rate: Mapped[Decimal] = mapped_column(default=Decimal("1"), nullable=False)

    amount_eusd: Mapped[Decimal] = mapped_column(nullable=False)

    transaction_date: Mapped[datetime | None] = mapped_column(nullable=True)

    is_voided: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    voided_at: Mapped[datetime | None] = mapped_column(nullable=True)

    voided_by: Mapped[UUID | None] = mapped_column(nullable=True)

    void_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<FinancialTransaction {self.transaction_type} {self.amount_eusd}>"
