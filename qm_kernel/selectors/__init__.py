"""Read-only selectors returning frozen DTOs."""

from qm_kernel.selectors.base import BaseSelector
from qm_kernel.selectors.inventory_selector import InventorySelector
from qm_kernel.selectors.procurement_selector import ProcurementSelector
from qm_kernel.selectors.stock_out_selector import StockOutSelector

__all__ = [
    "BaseSelector",
    "InventorySelector",
    "ProcurementSelector",
    "StockOutSelector",
]
