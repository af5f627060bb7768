"""
QMHQStatusService -- gathers child-record flags and resolves auto status.

Responsibility:
    Reads what ``qm_engines.auto_status.resolve_auto_status`` needs for one
    QMHQ line (stock-out approvals and execution for the item route; money
    figures, money-in and open POs for the expense and po routes).

Architecture position:
    Services layer.  Read-only projection; no business rule may branch on
    its output.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from qm_engines.auto_status import (
    AutoStatusFlags,
    all_line_items_executed,
    resolve_auto_status,
)
from qm_engines.budget import budget_figures
from qm_kernel.domain.values import AutoStatus, RouteType
from qm_kernel.exceptions import QMHQNotFoundError
from qm_kernel.models.qmhq import QMHQ
from qm_kernel.selectors.procurement_selector import ProcurementSelector
from qm_kernel.selectors.stock_out_selector import StockOutSelector
from qm_kernel.services.base import BaseService


class QMHQStatusService(BaseService):
    def __init__(self, session: Session):
        super().__init__(session)
        self._procurement = ProcurementSelector(session)
        self._stock_out = StockOutSelector(session)

    def flags(self, qmhq_id: UUID) -> AutoStatusFlags:
        """
        Collect the flags of the QMHQ line's own route.

        Raises:
            QMHQNotFoundError: If the QMHQ line does not exist.
        """
        route = self.session.execute(
            select(QMHQ.route_type).where(QMHQ.id == qmhq_id)
        ).scalar_one_or_none()
        if route is None:
            raise QMHQNotFoundError(str(qmhq_id))
        route = RouteType(route)

        if route == RouteType.ITEM:
            lines = self._stock_out.line_items_for_qmhq(qmhq_id)
            approvals = self._stock_out.approvals_for_line_items(
                [line.line_item_id for line in lines]
            )
            return AutoStatusFlags(
                route=route,
                has_any_approval=bool(approvals),
                all_line_items_executed=all_line_items_executed(
                    line.status for line in lines
                ),
            )

        figures = budget_figures(self._procurement.qmhq_money(qmhq_id))
        if route == RouteType.EXPENSE:
            return AutoStatusFlags(
                route=route,
                has_money_in=self._procurement.has_money_in(qmhq_id),
                yet_to_receive_eusd=figures.yet_to_receive,
            )

        return AutoStatusFlags(
            route=route,
            has_money_in=self._procurement.has_money_in(qmhq_id),
            has_open_po=self._procurement.has_open_po(qmhq_id),
            yet_to_receive_eusd=figures.yet_to_receive,
            balance_in_hand_eusd=figures.balance_in_hand,
        )

    def auto_status(self, qmhq_id: UUID) -> AutoStatus:
        return resolve_auto_status(self.flags(qmhq_id))
