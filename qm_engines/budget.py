"""
qm_engines.budget -- QMHQ budget figures.

Pure arithmetic over the three stored money columns of a QMHQ line:

    balance_in_hand = total_money_in_eusd - total_po_committed_eusd
    yet_to_receive  = amount_eusd - total_money_in_eusd

total_po_committed_eusd is maintained by the PO rollup and already excludes
cancelled POs.  Nothing here re-sums PO amounts.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from qm_kernel.domain.dtos import QMHQMoney

_ZERO = Decimal("0")


def _d(value: Decimal | int | str | None) -> Decimal:
    if value is None:
        return _ZERO
    return value if isinstance(value, Decimal) else Decimal(str(value))


def balance_in_hand(total_money_in_eusd: Decimal, total_po_committed_eusd: Decimal) -> Decimal:
    return _d(total_money_in_eusd) - _d(total_po_committed_eusd)


def yet_to_receive(amount_eusd: Decimal, total_money_in_eusd: Decimal) -> Decimal:
    return _d(amount_eusd) - _d(total_money_in_eusd)


@dataclass(frozen=True, slots=True)
class BudgetFigures:
    """Budget snapshot of one QMHQ line."""

    qmhq_id: UUID
    request_id: str
    amount_eusd: Decimal
    total_money_in_eusd: Decimal
    total_po_committed_eusd: Decimal
    balance_in_hand: Decimal
    yet_to_receive: Decimal

    @property
    def is_fully_funded(self) -> bool:
        return self.yet_to_receive <= 0

    @property
    def is_over_committed(self) -> bool:
        return self.balance_in_hand < 0


def budget_figures(money: QMHQMoney) -> BudgetFigures:
    money_in = _d(money.total_money_in_eusd)
    committed = _d(money.total_po_committed_eusd)
    amount = _d(money.amount_eusd)
    return BudgetFigures(
        qmhq_id=money.qmhq_id,
        request_id=money.request_id,
        amount_eusd=amount,
        total_money_in_eusd=money_in,
        total_po_committed_eusd=committed,
        balance_in_hand=balance_in_hand(money_in, committed),
        yet_to_receive=yet_to_receive(amount, money_in),
    )
