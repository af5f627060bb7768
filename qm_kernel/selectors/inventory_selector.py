"""
Module: qm_kernel.selectors.inventory_selector
Responsibility: Read access to the inventory transaction ledger: net stock
    per (item, warehouse), pending stock-out rows for a set of approvals, and
    executed quantities for a QMHQ line.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Net stock = SUM(completed, active inventory_in) -
      SUM(completed, active inventory_out), aggregated on every call.
    - Pending, cancelled, and inactive rows never count toward stock.
"""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import case, func, select

from qm_kernel.domain.dtos import PendingTransaction
from qm_kernel.domain.values import MovementType, TransactionStatus
from qm_kernel.models.inventory import InventoryTransaction
from qm_kernel.selectors.base import BaseSelector


def _signed_quantity():
    return case(
        (
            InventoryTransaction.movement_type == MovementType.INVENTORY_IN.value,
            InventoryTransaction.quantity,
        ),
        else_=-InventoryTransaction.quantity,
    )


class InventorySelector(BaseSelector):
    """Read-only queries over inventory_transactions."""

    def net_stock(self, item_id: UUID, warehouse_id: UUID) -> int:
        """
        Net completed quantity of an item in a warehouse.

        The result may be negative if the ledger was over-drawn by data
        entry outside this core; callers decide whether to clamp.
        """
        total = self.session.execute(
            select(func.coalesce(func.sum(_signed_quantity()), 0)).where(
                InventoryTransaction.item_id == item_id,
                InventoryTransaction.warehouse_id == warehouse_id,
                InventoryTransaction.status == TransactionStatus.COMPLETED.value,
                InventoryTransaction.is_active.is_(True),
            )
        ).scalar_one()
        return int(total)

    def net_stock_for_pairs(
        self,
        pairs: Iterable[tuple[UUID, UUID]],
    ) -> dict[tuple[UUID, UUID], int]:
        """
        Net completed quantity for many (item_id, warehouse_id) pairs in one
        aggregate query.  Pairs with no history map to 0.
        """
        wanted = list(dict.fromkeys(pairs))
        if not wanted:
            return {}

        rows = self.session.execute(
            select(
                InventoryTransaction.item_id,
                InventoryTransaction.warehouse_id,
                func.coalesce(func.sum(_signed_quantity()), 0),
            )
            .where(
                InventoryTransaction.item_id.in_(list({item for item, _ in wanted})),
                InventoryTransaction.warehouse_id.in_(list({wh for _, wh in wanted})),
                InventoryTransaction.status == TransactionStatus.COMPLETED.value,
                InventoryTransaction.is_active.is_(True),
            )
            .group_by(InventoryTransaction.item_id, InventoryTransaction.warehouse_id)
        ).all()

        result = {pair: 0 for pair in wanted}
        for item_id, warehouse_id, total in rows:
            if (item_id, warehouse_id) in result:
                result[(item_id, warehouse_id)] = int(total)
        return result

    def pending_for_approvals(
        self,
        approval_ids: Iterable[UUID],
        *,
        for_update: bool = False,
    ) -> list[PendingTransaction]:
        """
        Pending, active inventory_out rows linked to the given approvals.

        Args:
            approval_ids: Stock-out approval ids (decision=approved).
            for_update: Take row locks (SELECT ... FOR UPDATE).  Ignored by
                dialects without row locking.
        """
        ids = list(approval_ids)
        if not ids:
            return []

        stmt = (
            select(InventoryTransaction)
            .where(
                InventoryTransaction.stock_out_approval_id.in_(ids),
                InventoryTransaction.status == TransactionStatus.PENDING.value,
                InventoryTransaction.movement_type == MovementType.INVENTORY_OUT.value,
                InventoryTransaction.is_active.is_(True),
            )
            .order_by(InventoryTransaction.created_at, InventoryTransaction.id)
        )
        if for_update:
            stmt = stmt.with_for_update()

        rows = self.session.execute(stmt).scalars().all()
        return [
            PendingTransaction(
                transaction_id=row.id,
                item_id=row.item_id,
                warehouse_id=row.warehouse_id,
                quantity=row.quantity,
                stock_out_approval_id=row.stock_out_approval_id,
                qmhq_id=row.qmhq_id,
            )
            for row in rows
        ]

    def executed_quantity_for_qmhq(self, qmhq_id: UUID) -> int:
        """Sum of completed, active inventory_out quantity linked to a QMHQ."""
        total = self.session.execute(
            select(func.coalesce(func.sum(InventoryTransaction.quantity), 0)).where(
                InventoryTransaction.qmhq_id == qmhq_id,
                InventoryTransaction.movement_type == MovementType.INVENTORY_OUT.value,
                InventoryTransaction.status == TransactionStatus.COMPLETED.value,
                InventoryTransaction.is_active.is_(True),
            )
        ).scalar_one()
        return int(total)
