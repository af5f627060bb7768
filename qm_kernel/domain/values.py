"""
Values -- Enumerations and immutable value objects of the quartermaster domain.

Responsibility:
    Provides the exhaustive enums for every route, status, layer, and
    movement kind, so no code path looks statuses up by free-form string.
    Also holds small frozen value objects shared between engines and
    exceptions (StockShortfall).

Architecture position:
    Kernel > Domain -- pure, zero I/O. Imported by models, engines and
    services alike.

Invariants enforced:
    - Every status column is backed by one of these enums.
    - AutoStatus has exactly nine members: {route}_{pending|processing|done}.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import UUID


class RouteType(str, Enum):
    """Fulfillment route of a QMHQ line."""

    ITEM = "item"
    EXPENSE = "expense"
    PO = "po"


class POStatus(str, Enum):
    """Derived purchase order status."""

    NOT_STARTED = "not_started"
    PARTIALLY_INVOICED = "partially_invoiced"
    AWAITING_DELIVERY = "awaiting_delivery"
    PARTIALLY_RECEIVED = "partially_received"
    CLOSED = "closed"
    CANCELLED = "cancelled"


# Statuses that freeze a PO against automatic recalculation and header edits.
LOCKED_PO_STATUSES: frozenset[POStatus] = frozenset(
    {POStatus.CLOSED, POStatus.CANCELLED}
)


class POApprovalStatus(str, Enum):
    DRAFT = "draft"
    APPROVED = "approved"
    REJECTED = "rejected"


class AutoStatus(str, Enum):
    """Read-side projection of a QMHQ line's progress."""

    ITEM_PENDING = "item_pending"
    ITEM_PROCESSING = "item_processing"
    ITEM_DONE = "item_done"
    EXPENSE_PENDING = "expense_pending"
    EXPENSE_PROCESSING = "expense_processing"
    EXPENSE_DONE = "expense_done"
    PO_PENDING = "po_pending"
    PO_PROCESSING = "po_processing"
    PO_DONE = "po_done"

    @property
    def route(self) -> RouteType:
        return RouteType(self.value.rsplit("_", 1)[0])

    @property
    def phase(self) -> str:
        return self.value.rsplit("_", 1)[1]

    @classmethod
    def of(cls, route: RouteType, phase: str) -> AutoStatus:
        return cls(f"{route.value}_{phase}")


class ApprovalLayer(str, Enum):
    """L1 quartermaster approves quantity; L2 admin assigns a warehouse."""

    QUARTERMASTER = "quartermaster"
    ADMIN = "admin"


class ApprovalDecision(str, Enum):
    APPROVED = "approved"
    REJECTED = "rejected"


class StockOutLineStatus(str, Enum):
    """Stock-out line item status, resolved upstream of this core."""

    PENDING = "pending"
    APPROVED = "approved"
    AWAITING_ADMIN = "awaiting_admin"
    FULLY_APPROVED = "fully_approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    PARTIALLY_EXECUTED = "partially_executed"
    EXECUTED = "executed"


class StockOutRequestStatus(str, Enum):
    PENDING = "pending"
    PARTIALLY_APPROVED = "partially_approved"
    APPROVED = "approved"
    PARTIALLY_EXECUTED = "partially_executed"
    EXECUTED = "executed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class StockOutReason(str, Enum):
    REQUEST = "request"
    CONSUMPTION = "consumption"
    DAMAGE = "damage"
    LOST = "lost"
    TRANSFER = "transfer"
    ADJUSTMENT = "adjustment"


class MovementType(str, Enum):
    INVENTORY_IN = "inventory_in"
    INVENTORY_OUT = "inventory_out"


class TransactionStatus(str, Enum):
    """Inventory transaction lifecycle. pending -> completed is one-way."""

    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class FinancialTransactionType(str, Enum):
    MONEY_IN = "money_in"
    MONEY_OUT = "money_out"


class AuditAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    STATUS_CHANGE = "status_change"
    ASSIGNMENT_CHANGE = "assignment_change"
    VOID = "void"
    APPROVE = "approve"
    CLOSE = "close"
    CANCEL = "cancel"


@dataclass(frozen=True, slots=True)
class StockShortfall:
    """
    One (item, warehouse) group whose pending stock-out exceeds stock.

    Guarantees:
        - required > available.
        - message names the item and warehouse with both quantities.
    """

    item_id: UUID
    warehouse_id: UUID
    required: int
    available: int
    item_name: str | None = None
    warehouse_name: str | None = None

    @property
    def missing(self) -> int:
        return self.required - self.available

    @property
    def message(self) -> str:
        item = self.item_name or str(self.item_id)
        warehouse = self.warehouse_name or str(self.warehouse_id)
        return (
            f"{item}: Insufficient stock in {warehouse} "
            f"(need {self.required}, have {self.available})"
        )
