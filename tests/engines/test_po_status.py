"""
Tests for the pure PO status rules.

Tests cover:
- resolve_po_status: precedence, boundary transitions, zero-quantity POs
- Property tests (hypothesis): cancelled wins, zero invoiced -> not_started,
  determinism, closed only when everything matches
- aggregate_line_items, progress helpers, guards, status_summary
"""

from dataclasses import dataclass

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from qm_engines.po_status import (
    aggregate_line_items,
    calculate_line_item_progress,
    calculate_po_progress,
    can_cancel_po,
    can_create_invoice,
    can_edit_po,
    can_unlock_po,
    resolve_from_totals,
    resolve_po_status,
    status_summary,
)
from qm_kernel.domain.dtos import POQuantityTotals
from qm_kernel.domain.values import POStatus

quantities = st.integers(min_value=0, max_value=10_000)


class TestResolvePOStatus:
    def test_fully_matched_is_closed(self):
        assert resolve_po_status(100, 100, 100, False) == POStatus.CLOSED

    def test_half_invoiced_nothing_received(self):
        assert resolve_po_status(100, 50, 0, False) == POStatus.PARTIALLY_INVOICED

    def test_nothing_invoiced_is_not_started(self):
        assert resolve_po_status(100, 0, 0, False) == POStatus.NOT_STARTED

    def test_fully_invoiced_nothing_received_awaits_delivery(self):
        assert resolve_po_status(100, 100, 0, False) == POStatus.AWAITING_DELIVERY

    def test_fully_invoiced_partly_received(self):
        assert resolve_po_status(100, 100, 40, False) == POStatus.PARTIALLY_RECEIVED

    def test_over_invoiced_counts_as_fully_invoiced(self):
        assert resolve_po_status(100, 120, 0, False) == POStatus.AWAITING_DELIVERY

    def test_over_received_is_closed(self):
        assert resolve_po_status(100, 100, 130, False) == POStatus.CLOSED

    def test_partial_invoice_wins_over_receipts(self):
        # Goods arrived before the full invoice: still partially invoiced
        assert resolve_po_status(100, 90, 100, False) == POStatus.PARTIALLY_INVOICED

    def test_no_lines_is_not_started(self):
        assert resolve_po_status(0, 0, 0, False) == POStatus.NOT_STARTED

    def test_zero_total_with_stray_invoice_is_not_started(self):
        assert resolve_po_status(0, 5, 5, False) == POStatus.NOT_STARTED

    def test_cancelled_wins_over_closed_quantities(self):
        assert resolve_po_status(100, 100, 100, True) == POStatus.CANCELLED

    def test_negative_quantity_rejected(self):
        with pytest.raises(ValueError, match="cannot be negative"):
            resolve_po_status(100, -1, 0, False)

    def test_resolve_from_totals(self):
        totals = POQuantityTotals(line_count=2, total_quantity=10, invoiced_quantity=10, received_quantity=3)
        assert resolve_from_totals(totals, is_cancelled=False) == POStatus.PARTIALLY_RECEIVED


class TestResolvePOStatusProperties:
    @given(total=quantities, invoiced=quantities, received=quantities)
    @settings(max_examples=300)
    def test_cancelled_always_wins(self, total, invoiced, received):
        assert resolve_po_status(total, invoiced, received, True) == POStatus.CANCELLED

    @given(total=quantities)
    def test_nothing_invoiced_or_received_is_not_started(self, total):
        assert resolve_po_status(total, 0, 0, False) == POStatus.NOT_STARTED

    @given(total=quantities, invoiced=quantities, received=quantities, cancelled=st.booleans())
    def test_deterministic(self, total, invoiced, received, cancelled):
        first = resolve_po_status(total, invoiced, received, cancelled)
        second = resolve_po_status(total, invoiced, received, cancelled)
        assert first == second

    @given(total=quantities, invoiced=quantities, received=quantities)
    @settings(max_examples=300)
    def test_closed_only_when_fully_invoiced_and_received(self, total, invoiced, received):
        status = resolve_po_status(total, invoiced, received, False)
        if status == POStatus.CLOSED:
            assert total > 0
            assert invoiced >= total
            assert received >= total

    @given(total=st.integers(min_value=1, max_value=10_000), data=st.data())
    def test_result_is_never_cancelled_when_not_cancelled(self, total, data):
        invoiced = data.draw(quantities)
        received = data.draw(quantities)
        assert resolve_po_status(total, invoiced, received, False) != POStatus.CANCELLED


@dataclass
class _Line:
    quantity: int
    invoiced_quantity: int
    received_quantity: int
    is_active: bool = True


class TestAggregateLineItems:
    def test_sums_active_lines(self):
        totals = aggregate_line_items(
            [_Line(10, 5, 0), _Line(20, 20, 10), _Line(99, 99, 99, is_active=False)]
        )
        assert totals == POQuantityTotals(
            line_count=2, total_quantity=30, invoiced_quantity=25, received_quantity=10
        )

    def test_empty(self):
        assert aggregate_line_items([]) == POQuantityTotals.empty()


class TestProgress:
    def test_po_progress_rounds_half_up(self):
        progress = calculate_po_progress(200, 1, 3)
        assert progress.invoiced_percent == 1  # 0.5 -> 1
        assert progress.received_percent == 2  # 1.5 -> 2

    def test_po_progress_is_capped(self):
        progress = calculate_po_progress(10, 15, 0)
        assert progress.invoiced_percent == 100

    def test_po_progress_zero_total(self):
        progress = calculate_po_progress(0, 0, 0)
        assert (progress.invoiced_percent, progress.received_percent) == (0, 0)

    def test_line_item_availability_never_negative(self):
        progress = calculate_line_item_progress(10, 12, 4)
        assert progress.available_to_invoice == 0
        assert progress.available_to_receive == 6


class TestGuards:
    @pytest.mark.parametrize("status", [POStatus.CLOSED, POStatus.CANCELLED])
    def test_locked_statuses_refuse_edit_and_cancel(self, status):
        assert not can_edit_po(status)
        assert not can_cancel_po(status)

    def test_open_status_allows_edit_and_cancel(self):
        assert can_edit_po("partially_received")
        assert can_cancel_po(POStatus.NOT_STARTED)

    def test_only_closed_can_be_unlocked(self):
        assert can_unlock_po(POStatus.CLOSED)
        assert not can_unlock_po(POStatus.PARTIALLY_RECEIVED)
        assert not can_unlock_po(POStatus.CANCELLED)

    def test_invoice_refused_when_fully_invoiced(self):
        assert not can_create_invoice(POStatus.AWAITING_DELIVERY)
        assert not can_create_invoice(POStatus.PARTIALLY_INVOICED, total_qty=10, invoiced_qty=10)
        assert can_create_invoice(POStatus.PARTIALLY_INVOICED, total_qty=10, invoiced_qty=4)


class TestStatusSummary:
    def test_cancelled(self):
        assert status_summary(POStatus.CANCELLED, 10, 0, 0) == "This PO has been cancelled"

    def test_closed(self):
        assert status_summary(POStatus.CLOSED, 10, 10, 10) == "Fully matched: ordered = invoiced = received"

    def test_progress_text(self):
        assert (
            status_summary(POStatus.PARTIALLY_INVOICED, 100, 50, 0)
            == "50/100 invoiced (50%), 0/100 received (0%)"
        )

    def test_no_lines(self):
        assert status_summary(POStatus.NOT_STARTED, 0, 0, 0) == "No line items"
