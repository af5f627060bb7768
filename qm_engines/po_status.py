"""
qm_engines.po_status -- Purchase order status rules.

Responsibility:
    The one authoritative mapping from a PO's aggregated line quantities
    (ordered, invoiced, received) plus its cancelled flag to a POStatus.
    Services and the line-item rollup listener both call
    ``resolve_po_status``; nothing else derives PO status.

    Also provides the read-side helpers built on the same inputs: progress
    percentages, per-line availability, edit/cancel/unlock/invoice guards,
    and the human status summary.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import qm_kernel.domain types.

Invariants enforced:
    - cancelled always wins, regardless of quantities.
    - invoiced == 0 -> not_started.
    - total == 0 (no active lines) -> not_started.
    - Purity: identical inputs always give identical output; no stored
      transition history is consulted.

Failure modes:
    - ValueError on negative quantities (the store forbids them).
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from qm_kernel.domain.dtos import POQuantityTotals
from qm_kernel.domain.values import LOCKED_PO_STATUSES, POStatus


def resolve_po_status(
    total_qty: int,
    invoiced_qty: int,
    received_qty: int,
    is_cancelled: bool,
) -> POStatus:
    """
    Derive a PO's status from its aggregated line quantities.

    Precedence, highest first:
        cancelled -> CANCELLED
        total == 0 or invoiced == 0 -> NOT_STARTED
        invoiced < total -> PARTIALLY_INVOICED
        received == 0 -> AWAITING_DELIVERY
        received < total -> PARTIALLY_RECEIVED
        otherwise -> CLOSED

    Args:
        total_qty: Sum of ordered quantity over active lines.
        invoiced_qty: Sum of invoiced_quantity over active lines.
        received_qty: Sum of received_quantity over active lines.
        is_cancelled: Whether the PO has been cancelled.

    Returns:
        The derived POStatus.
    """
    if is_cancelled:
        return POStatus.CANCELLED

    if total_qty < 0 or invoiced_qty < 0 or received_qty < 0:
        raise ValueError(
            "PO quantities cannot be negative: "
            f"total={total_qty}, invoiced={invoiced_qty}, received={received_qty}"
        )

    if total_qty == 0 or invoiced_qty == 0:
        return POStatus.NOT_STARTED

    if invoiced_qty < total_qty:
        return POStatus.PARTIALLY_INVOICED

    # Fully invoiced from here on
    if received_qty == 0:
        return POStatus.AWAITING_DELIVERY

    if received_qty < total_qty:
        return POStatus.PARTIALLY_RECEIVED

    return POStatus.CLOSED


def aggregate_line_items(lines: Iterable[Any]) -> POQuantityTotals:
    """
    Sum quantity / invoiced / received over in-memory PO lines.

    Accepts anything exposing ``quantity``, ``invoiced_quantity``,
    ``received_quantity`` and (optionally) ``is_active``.  Inactive lines
    are skipped.
    """
    count = total = invoiced = received = 0
    for line in lines:
        if not getattr(line, "is_active", True):
            continue
        count += 1
        total += line.quantity or 0
        invoiced += line.invoiced_quantity or 0
        received += line.received_quantity or 0
    return POQuantityTotals(count, total, invoiced, received)


def resolve_from_totals(totals: POQuantityTotals, is_cancelled: bool) -> POStatus:
    """``resolve_po_status`` over a selector's quantity totals."""
    return resolve_po_status(
        totals.total_quantity,
        totals.invoiced_quantity,
        totals.received_quantity,
        is_cancelled,
    )


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------


def _percent(part: int, whole: int) -> int:
    if whole <= 0:
        return 0
    pct = (Decimal(part) * 100 / Decimal(whole)).quantize(
        Decimal("1"), rounding=ROUND_HALF_UP
    )
    return max(0, min(100, int(pct)))


@dataclass(frozen=True, slots=True)
class POProgress:
    invoiced_percent: int
    received_percent: int


def calculate_po_progress(total_qty: int, invoiced_qty: int, received_qty: int) -> POProgress:
    """Invoiced/received percentages, rounded half-up and capped to [0, 100]."""
    return POProgress(
        invoiced_percent=_percent(invoiced_qty, total_qty),
        received_percent=_percent(received_qty, total_qty),
    )


@dataclass(frozen=True, slots=True)
class LineItemProgress:
    invoiced_percent: int
    received_percent: int
    available_to_invoice: int
    available_to_receive: int


def calculate_line_item_progress(
    quantity: int,
    invoiced_qty: int,
    received_qty: int,
) -> LineItemProgress:
    """Progress of one PO line.  Availability figures are never negative."""
    return LineItemProgress(
        invoiced_percent=_percent(invoiced_qty, quantity),
        received_percent=_percent(received_qty, quantity),
        available_to_invoice=max(0, quantity - invoiced_qty),
        available_to_receive=max(0, quantity - received_qty),
    )


# ---------------------------------------------------------------------------
# Guards
# ---------------------------------------------------------------------------


def can_edit_po(status: POStatus | str) -> bool:
    return POStatus(status) not in LOCKED_PO_STATUSES


def can_cancel_po(status: POStatus | str) -> bool:
    return POStatus(status) not in LOCKED_PO_STATUSES


def can_unlock_po(status: POStatus | str) -> bool:
    return POStatus(status) == POStatus.CLOSED


def can_create_invoice(
    status: POStatus | str,
    total_qty: int | None = None,
    invoiced_qty: int | None = None,
) -> bool:
    """
    Whether a new invoice may be raised against the PO.

    Closed, cancelled and fully invoiced (awaiting_delivery) POs refuse new
    invoices.  When quantities are given, a PO with nothing left to invoice
    also refuses.
    """
    status = POStatus(status)
    if status in LOCKED_PO_STATUSES or status == POStatus.AWAITING_DELIVERY:
        return False
    if total_qty is not None and invoiced_qty is not None and total_qty > 0:
        return invoiced_qty < total_qty
    return True


def status_summary(
    status: POStatus | str,
    total_qty: int,
    invoiced_qty: int,
    received_qty: int,
) -> str:
    """Human-readable one-liner for a PO's status."""
    status = POStatus(status)
    if status == POStatus.CANCELLED:
        return "This PO has been cancelled"
    if status == POStatus.CLOSED:
        return "Fully matched: ordered = invoiced = received"
    if total_qty <= 0:
        return "No line items"

    progress = calculate_po_progress(total_qty, invoiced_qty, received_qty)
    return (
        f"{invoiced_qty}/{total_qty} invoiced ({progress.invoiced_percent}%), "
        f"{received_qty}/{total_qty} received ({progress.received_percent}%)"
    )
