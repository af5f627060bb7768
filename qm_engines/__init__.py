"""
Module: qm_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  This is the import surface for qm_services.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import qm_kernel.domain (and sibling engine modules).
    MUST NOT import qm_services or touch a Session.

Invariants enforced:
    - Purity: engines never read the clock; no timestamps are produced here.
    - Decimal-only arithmetic for money.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    Selected engine invocations are traced via ``@traced_engine`` (see
    ``qm_engines.tracer``), emitting QM_ENGINE_TRACE debug records.

Usage:
    from qm_engines.po_status import resolve_po_status
    from qm_engines.auto_status import AutoStatusFlags, resolve_auto_status
    from qm_engines.approval_layers import resolve_layer_totals
    from qm_engines.stock_validation import find_shortfalls, group_pending
    from qm_engines.budget import budget_figures
"""

from qm_kernel.logging_config import get_logger

logger = get_logger("engines")

from qm_engines.approval_layers import (
    ApprovalBreakdown,
    FulfillmentMetrics,
    LayerTotals,
    LineItemLayerTotals,
    fulfillment_metrics,
    resolve_layer_totals,
)
from qm_engines.auto_status import (
    AutoStatusFlags,
    all_line_items_executed,
    resolve_auto_status,
)
from qm_engines.budget import (
    BudgetFigures,
    balance_in_hand,
    budget_figures,
    yet_to_receive,
)
from qm_engines.po_status import (
    LineItemProgress,
    POProgress,
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
from qm_engines.stock_validation import (
    QuantityCheck,
    StockGroup,
    find_shortfalls,
    group_pending,
    validate_stock_out_quantity,
)
from qm_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    # approval_layers
    "ApprovalBreakdown",
    "FulfillmentMetrics",
    "LayerTotals",
    "LineItemLayerTotals",
    "fulfillment_metrics",
    "resolve_layer_totals",
    # auto_status
    "AutoStatusFlags",
    "all_line_items_executed",
    "resolve_auto_status",
    # budget
    "BudgetFigures",
    "balance_in_hand",
    "budget_figures",
    "yet_to_receive",
    # po_status
    "LineItemProgress",
    "POProgress",
    "aggregate_line_items",
    "calculate_line_item_progress",
    "calculate_po_progress",
    "can_cancel_po",
    "can_create_invoice",
    "can_edit_po",
    "can_unlock_po",
    "resolve_from_totals",
    "resolve_po_status",
    "status_summary",
    # stock_validation
    "QuantityCheck",
    "StockGroup",
    "find_shortfalls",
    "group_pending",
    "validate_stock_out_quantity",
    # tracer
    "compute_input_fingerprint",
    "traced_engine",
]
