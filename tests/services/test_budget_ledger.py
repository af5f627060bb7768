"""
Tests for BudgetLedger and the QMHQ money rollups behind it.

Tests cover:
- balance in hand / yet to receive from stored rollups
- cancelled POs and voided money-in are excluded
- unknown QMHQ
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from qm_kernel.exceptions import QMHQNotFoundError
from qm_services.budget_ledger import BudgetLedger
from qm_services.po_lifecycle import POLifecycleManager


@pytest.fixture
def ledger(session):
    return BudgetLedger(session)


class TestBudgetLedger:
    def test_figures(self, ledger, create_qmhq, create_po, create_money_in):
        qmhq = create_qmhq(amount_eusd=Decimal("1000"))
        create_money_in(qmhq, Decimal("700"))
        create_po(total_amount_eusd=Decimal("300"), qmhq=qmhq)
        create_po(total_amount_eusd=Decimal("100"), qmhq=qmhq)

        figures = ledger.figures(qmhq.id)

        assert figures.total_money_in_eusd == Decimal("700")
        assert figures.total_po_committed_eusd == Decimal("400")
        assert ledger.balance_in_hand(qmhq.id) == Decimal("300")
        assert ledger.yet_to_receive(qmhq.id) == Decimal("300")

    def test_voided_money_in_excluded(self, ledger, create_qmhq, create_money_in):
        qmhq = create_qmhq(amount_eusd=Decimal("1000"))
        create_money_in(qmhq, Decimal("250"))
        create_money_in(qmhq, Decimal("999"), is_voided=True)

        assert ledger.figures(qmhq.id).total_money_in_eusd == Decimal("250")

    def test_voiding_later_recomputes(self, session, ledger, create_qmhq, create_money_in):
        qmhq = create_qmhq(amount_eusd=Decimal("1000"))
        tx = create_money_in(qmhq, Decimal("250"))

        tx.is_voided = True
        session.commit()

        assert ledger.figures(qmhq.id).total_money_in_eusd == Decimal("0")

    def test_cancelled_po_excluded(
        self, session, ledger, admin_actor, create_qmhq, create_po
    ):
        qmhq = create_qmhq()
        kept = create_po(total_amount_eusd=Decimal("200"), qmhq=qmhq)
        dropped = create_po(total_amount_eusd=Decimal("500"), qmhq=qmhq)

        POLifecycleManager(session).cancel(dropped.id, "duplicate order", admin_actor)
        session.commit()

        assert ledger.figures(qmhq.id).total_po_committed_eusd == kept.total_amount_eusd

    def test_unknown_qmhq(self, ledger):
        with pytest.raises(QMHQNotFoundError):
            ledger.figures(uuid4())
