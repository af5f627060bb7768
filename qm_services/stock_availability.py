"""
StockAvailabilityService -- net on-hand quantity per (item, warehouse).

Responsibility:
    Answers "how much of item X is in warehouse W right now" from the
    completed inventory transaction ledger.

Architecture position:
    Services layer.  Thin wrapper over InventorySelector so the
    ExecutionEngine and callers share one definition of availability.

Invariants enforced:
    - available = SUM(completed, active inventory_in)
                - SUM(completed, active inventory_out)
    - Recomputed from the ledger on every call.  There is no cached running
      balance, so concurrent postings by other writers are always seen at
      the moment of the query.
    - The raw figure is returned, even when negative; validation compares
      against it unclamped.
"""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy.orm import Session

from qm_engines.stock_validation import QuantityCheck, validate_stock_out_quantity
from qm_kernel.logging_config import get_logger
from qm_kernel.selectors.inventory_selector import InventorySelector
from qm_kernel.services.base import BaseService

logger = get_logger("services.stock_availability")


class StockAvailabilityService(BaseService):
    """
    Ledger-derived stock figures.

    Contract:
        Read-only.  Never adds, flushes or commits.
    """

    def __init__(self, session: Session):
        super().__init__(session)
        self._inventory = InventorySelector(session)

    def available_stock(self, item_id: UUID, warehouse_id: UUID) -> int:
        return self._inventory.net_stock(item_id, warehouse_id)

    def available_stock_by_pair(
        self,
        pairs: Iterable[tuple[UUID, UUID]],
    ) -> dict[tuple[UUID, UUID], int]:
        """Availability for many (item_id, warehouse_id) pairs in one query."""
        return self._inventory.net_stock_for_pairs(pairs)

    def check_quantity(
        self,
        item_id: UUID,
        warehouse_id: UUID,
        requested: int,
    ) -> QuantityCheck:
        """Validate a prospective stock-out quantity against current stock."""
        available = self.available_stock(item_id, warehouse_id)
        check = validate_stock_out_quantity(requested, available)
        if not check.valid:
            logger.debug(
                "stock_quantity_rejected",
                extra={
                    "item_id": str(item_id),
                    "warehouse_id": str(warehouse_id),
                    "requested": requested,
                    "available": available,
                },
            )
        return check
