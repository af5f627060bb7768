"""
Module: qm_kernel.selectors.procurement_selector
Responsibility: Read access to purchase orders, PO line aggregates, QMHQ
    money figures, and money-in transactions.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - PO quantity totals cover active line items only.
    - QMHQ money figures are read as stored (post-rollup).  Nothing here
      re-sums PO amounts into a second commitment figure.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select

from qm_kernel.domain.dtos import POQuantityTotals, QMHQMoney
from qm_kernel.domain.values import FinancialTransactionType, POStatus
from qm_kernel.models.financial_transaction import FinancialTransaction
from qm_kernel.models.purchase_order import POLineItem, PurchaseOrder
from qm_kernel.models.qmhq import QMHQ
from qm_kernel.selectors.base import BaseSelector


class ProcurementSelector(BaseSelector):
    """Read-only queries over QMHQ lines, POs, and financial transactions."""

    def quantity_totals(self, po_id: UUID) -> POQuantityTotals:
        """Sum quantity / invoiced / received over a PO's active line items."""
        row = self.session.execute(
            select(
                func.count(POLineItem.id),
                func.coalesce(func.sum(POLineItem.quantity), 0),
                func.coalesce(func.sum(POLineItem.invoiced_quantity), 0),
                func.coalesce(func.sum(POLineItem.received_quantity), 0),
            ).where(
                POLineItem.po_id == po_id,
                POLineItem.is_active.is_(True),
            )
        ).one()
        return POQuantityTotals(
            line_count=int(row[0]),
            total_quantity=int(row[1]),
            invoiced_quantity=int(row[2]),
            received_quantity=int(row[3]),
        )

    def qmhq_money(self, qmhq_id: UUID) -> QMHQMoney | None:
        """
        Money figures of a QMHQ line straight from the table.

        Uses a Core select so the values reflect the latest rollup even when
        the session holds a stale QMHQ instance.
        """
        row = self.session.execute(
            select(
                QMHQ.id,
                QMHQ.request_id,
                QMHQ.amount_eusd,
                QMHQ.total_money_in_eusd,
                QMHQ.total_po_committed_eusd,
            ).where(QMHQ.id == qmhq_id)
        ).one_or_none()
        if row is None:
            return None
        return QMHQMoney(
            qmhq_id=row[0],
            request_id=row[1],
            amount_eusd=row[2],
            total_money_in_eusd=row[3],
            total_po_committed_eusd=row[4],
        )

    def has_money_in(self, qmhq_id: UUID) -> bool:
        """True if any active, non-voided money_in transaction exists."""
        return (
            self.session.execute(
                select(FinancialTransaction.id)
                .where(
                    FinancialTransaction.qmhq_id == qmhq_id,
                    FinancialTransaction.transaction_type
                    == FinancialTransactionType.MONEY_IN.value,
                    FinancialTransaction.is_voided.is_(False),
                    FinancialTransaction.is_active.is_(True),
                )
                .limit(1)
            ).first()
            is not None
        )

    def has_open_po(self, qmhq_id: UUID) -> bool:
        """True if any active, non-cancelled PO exists for the QMHQ line."""
        return (
            self.session.execute(
                select(PurchaseOrder.id)
                .where(
                    PurchaseOrder.qmhq_id == qmhq_id,
                    PurchaseOrder.status != POStatus.CANCELLED.value,
                    PurchaseOrder.is_active.is_(True),
                )
                .limit(1)
            ).first()
            is not None
        )
