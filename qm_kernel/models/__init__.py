"""SQLAlchemy ORM models for the quartermaster core."""

from qm_kernel.models.audit_log import AuditLogEntry
from qm_kernel.models.catalog import Item, Warehouse
from qm_kernel.models.financial_transaction import FinancialTransaction
from qm_kernel.models.inventory import InventoryTransaction
from qm_kernel.models.purchase_order import POLineItem, PurchaseOrder
from qm_kernel.models.qmhq import QMHQ
from qm_kernel.models.stock_out import (
    StockOutApproval,
    StockOutLineItem,
    StockOutRequest,
)

__all__ = [
    "AuditLogEntry",
    "FinancialTransaction",
    "InventoryTransaction",
    "Item",
    "POLineItem",
    "PurchaseOrder",
    "QMHQ",
    "StockOutApproval",
    "StockOutLineItem",
    "StockOutRequest",
    "Warehouse",
]
