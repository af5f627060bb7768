"""
Tests for the QMHQ auto status resolver.

Tests cover:
- item route: the three boundary transitions pending -> processing -> done
- expense route: yet-to-receive <= 0 is done, money-in is processing
- po route: done needs both yet-to-receive and balance-in-hand <= 0
- all_line_items_executed: rejected/cancelled lines, empty input
"""

from decimal import Decimal

import pytest

from qm_engines.auto_status import (
    AutoStatusFlags,
    all_line_items_executed,
    resolve_auto_status,
)
from qm_kernel.domain.values import AutoStatus, RouteType, StockOutLineStatus


class TestItemRoute:
    def test_no_approvals_is_pending(self):
        flags = AutoStatusFlags(route=RouteType.ITEM)
        assert resolve_auto_status(flags) == AutoStatus.ITEM_PENDING

    def test_any_approval_is_processing(self):
        flags = AutoStatusFlags(route=RouteType.ITEM, has_any_approval=True)
        assert resolve_auto_status(flags) == AutoStatus.ITEM_PROCESSING

    def test_all_executed_is_done(self):
        flags = AutoStatusFlags(
            route=RouteType.ITEM, has_any_approval=True, all_line_items_executed=True
        )
        assert resolve_auto_status(flags) == AutoStatus.ITEM_DONE

    def test_done_wins_over_processing(self):
        flags = AutoStatusFlags(route=RouteType.ITEM, all_line_items_executed=True)
        assert resolve_auto_status(flags) == AutoStatus.ITEM_DONE


class TestExpenseRoute:
    def test_fully_received_is_done(self):
        flags = AutoStatusFlags(
            route=RouteType.EXPENSE,
            has_money_in=True,
            yet_to_receive_eusd=Decimal("1000") - Decimal("1000"),
        )
        assert resolve_auto_status(flags) == AutoStatus.EXPENSE_DONE

    def test_money_in_is_processing(self):
        flags = AutoStatusFlags(
            route=RouteType.EXPENSE, has_money_in=True, yet_to_receive_eusd=Decimal("400")
        )
        assert resolve_auto_status(flags) == AutoStatus.EXPENSE_PROCESSING

    def test_nothing_received_is_pending(self):
        flags = AutoStatusFlags(route=RouteType.EXPENSE, yet_to_receive_eusd=Decimal("1000"))
        assert resolve_auto_status(flags) == AutoStatus.EXPENSE_PENDING

    def test_unknown_figures_never_done(self):
        flags = AutoStatusFlags(route=RouteType.EXPENSE)
        assert resolve_auto_status(flags) == AutoStatus.EXPENSE_PENDING


class TestPORoute:
    def test_received_and_spent_is_done(self):
        flags = AutoStatusFlags(
            route=RouteType.PO,
            has_open_po=True,
            yet_to_receive_eusd=Decimal("0"),
            balance_in_hand_eusd=Decimal("0"),
        )
        assert resolve_auto_status(flags) == AutoStatus.PO_DONE

    def test_money_left_in_hand_is_not_done(self):
        flags = AutoStatusFlags(
            route=RouteType.PO,
            has_open_po=True,
            yet_to_receive_eusd=Decimal("0"),
            balance_in_hand_eusd=Decimal("250"),
        )
        assert resolve_auto_status(flags) == AutoStatus.PO_PROCESSING

    def test_no_open_po_is_pending(self):
        flags = AutoStatusFlags(
            route=RouteType.PO,
            yet_to_receive_eusd=Decimal("1000"),
            balance_in_hand_eusd=Decimal("0"),
        )
        assert resolve_auto_status(flags) == AutoStatus.PO_PENDING


class TestAllLineItemsExecuted:
    def test_all_executed(self):
        assert all_line_items_executed([StockOutLineStatus.EXECUTED, "executed"])

    def test_partially_executed_is_not_done(self):
        assert not all_line_items_executed(
            [StockOutLineStatus.EXECUTED, StockOutLineStatus.PARTIALLY_EXECUTED]
        )

    def test_rejected_lines_are_ignored(self):
        assert all_line_items_executed(
            [StockOutLineStatus.EXECUTED, StockOutLineStatus.REJECTED]
        )

    @pytest.mark.parametrize(
        "statuses",
        [[], [StockOutLineStatus.REJECTED], [StockOutLineStatus.CANCELLED]],
    )
    def test_nothing_in_play_is_not_executed(self, statuses):
        assert not all_line_items_executed(statuses)


def test_every_result_belongs_to_its_route():
    for route in RouteType:
        status = resolve_auto_status(AutoStatusFlags(route=route))
        assert status.route == route
        assert status.phase == "pending"
