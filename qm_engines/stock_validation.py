"""
qm_engines.stock_validation -- Pre-execution stock checks.

Responsibility:
    Group pending stock-out transactions by (warehouse, item), compare each
    group's total against available stock, and report every shortfall at
    once.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  The ExecutionEngine
    service gathers pending rows and stock figures and calls in here.

Invariants enforced:
    - Every group is checked; the result lists all shortfalls, never just
      the first.
    - A group passes only when available >= required.
    - Output order is deterministic (first appearance of each group in the
      pending list).
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from uuid import UUID

from qm_engines.tracer import traced_engine
from qm_kernel.domain.dtos import PendingTransaction
from qm_kernel.domain.values import StockShortfall


@dataclass(frozen=True, slots=True)
class StockGroup:
    """Pending stock-out demand for one (item, warehouse) pair."""

    item_id: UUID
    warehouse_id: UUID
    required: int
    transaction_count: int

    @property
    def key(self) -> tuple[UUID, UUID]:
        return (self.item_id, self.warehouse_id)


def group_pending(pending: Iterable[PendingTransaction]) -> list[StockGroup]:
    """Sum pending quantities per (item, warehouse), keeping first-seen order."""
    required: dict[tuple[UUID, UUID], int] = {}
    counts: dict[tuple[UUID, UUID], int] = {}
    for tx in pending:
        key = (tx.item_id, tx.warehouse_id)
        required[key] = required.get(key, 0) + tx.quantity
        counts[key] = counts.get(key, 0) + 1
    return [
        StockGroup(
            item_id=item_id,
            warehouse_id=warehouse_id,
            required=total,
            transaction_count=counts[(item_id, warehouse_id)],
        )
        for (item_id, warehouse_id), total in required.items()
    ]


@traced_engine(
    "stock_validation", "1.0", fingerprint_fields=("groups", "available")
)
def find_shortfalls(
    groups: Iterable[StockGroup],
    available: Mapping[tuple[UUID, UUID], int],
    item_names: Mapping[UUID, str] | None = None,
    warehouse_names: Mapping[UUID, str] | None = None,
) -> list[StockShortfall]:
    """
    Every group whose requirement exceeds available stock.

    Args:
        groups: Output of ``group_pending``.
        available: Net stock keyed by (item_id, warehouse_id).  Missing
            keys count as zero.
        item_names: Optional display names for messages.
        warehouse_names: Optional display names for messages.
    """
    item_names = item_names or {}
    warehouse_names = warehouse_names or {}

    shortfalls: list[StockShortfall] = []
    for group in groups:
        on_hand = available.get(group.key, 0)
        if on_hand < group.required:
            shortfalls.append(
                StockShortfall(
                    item_id=group.item_id,
                    warehouse_id=group.warehouse_id,
                    required=group.required,
                    available=on_hand,
                    item_name=item_names.get(group.item_id),
                    warehouse_name=warehouse_names.get(group.warehouse_id),
                )
            )
    return shortfalls


@dataclass(frozen=True, slots=True)
class QuantityCheck:
    valid: bool
    error: str | None = None


def validate_stock_out_quantity(requested: int, available: int) -> QuantityCheck:
    """Check a single stock-out quantity against what is on hand."""
    if requested <= 0:
        return QuantityCheck(False, "Quantity must be greater than zero")
    if requested > available:
        return QuantityCheck(
            False,
            f"Insufficient stock. Available: {max(available, 0)}, Requested: {requested}",
        )
    return QuantityCheck(True)
