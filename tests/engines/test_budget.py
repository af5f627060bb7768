"""Tests for the QMHQ budget formulas."""

from decimal import Decimal
from uuid import uuid4

from hypothesis import given
from hypothesis import strategies as st

from qm_engines.budget import balance_in_hand, budget_figures, yet_to_receive
from qm_kernel.domain.dtos import QMHQMoney

amounts = st.decimals(min_value=0, max_value=10_000_000, places=2, allow_nan=False)


def money(amount, money_in, committed) -> QMHQMoney:
    return QMHQMoney(
        qmhq_id=uuid4(),
        request_id="QMHQ-2026-00001",
        amount_eusd=Decimal(amount),
        total_money_in_eusd=Decimal(money_in),
        total_po_committed_eusd=Decimal(committed),
    )


class TestFormulas:
    def test_balance_in_hand(self):
        assert balance_in_hand(Decimal("1000"), Decimal("600")) == Decimal("400")

    def test_yet_to_receive(self):
        assert yet_to_receive(Decimal("1000"), Decimal("250")) == Decimal("750")

    def test_none_counts_as_zero(self):
        assert balance_in_hand(None, Decimal("10")) == Decimal("-10")

    @given(money_in=amounts, committed=amounts)
    def test_balance_plus_commitment_is_money_in(self, money_in, committed):
        assert balance_in_hand(money_in, committed) + committed == money_in


class TestBudgetFigures:
    def test_figures(self):
        figures = budget_figures(money("1000", "1000", "600"))

        assert figures.balance_in_hand == Decimal("400")
        assert figures.yet_to_receive == Decimal("0")
        assert figures.is_fully_funded
        assert not figures.is_over_committed

    def test_over_committed(self):
        figures = budget_figures(money("1000", "500", "700"))

        assert figures.balance_in_hand == Decimal("-200")
        assert figures.is_over_committed
        assert not figures.is_fully_funded
