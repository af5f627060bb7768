"""
BudgetLedger -- money-in / committed / balance-in-hand of a QMHQ line.

Responsibility:
    Reads the QMHQ money columns as stored after rollup and derives
    balance_in_hand and yet_to_receive through ``qm_engines.budget``.

Architecture position:
    Services layer.  Read-only.

Invariants enforced:
    - total_po_committed_eusd is read, never re-summed from PO rows.  The
      PO rollup (qm_services.rollups) is its only writer, so there is one
      source of truth for commitment.
    - Figures are read with a Core select, so they reflect rollups flushed
      earlier in the same transaction even if an ORM instance is stale.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from qm_engines.budget import BudgetFigures, budget_figures
from qm_kernel.exceptions import QMHQNotFoundError
from qm_kernel.selectors.procurement_selector import ProcurementSelector
from qm_kernel.services.base import BaseService


class BudgetLedger(BaseService):
    def __init__(self, session: Session):
        super().__init__(session)
        self._procurement = ProcurementSelector(session)

    def figures(self, qmhq_id: UUID) -> BudgetFigures:
        """
        Current budget snapshot of a QMHQ line.

        Raises:
            QMHQNotFoundError: If the QMHQ line does not exist.
        """
        money = self._procurement.qmhq_money(qmhq_id)
        if money is None:
            raise QMHQNotFoundError(str(qmhq_id))
        return budget_figures(money)

    def balance_in_hand(self, qmhq_id: UUID) -> Decimal:
        return self.figures(qmhq_id).balance_in_hand

    def yet_to_receive(self, qmhq_id: UUID) -> Decimal:
        return self.figures(qmhq_id).yet_to_receive
